# src/mdtrans/schema.py
"""
Wire contracts for the chat-completions API.

Purpose:
- Validate each streamed chunk before its content reaches the translation.
- Read the `{"error": {...}}` body returned with HTTP errors.

Only the fields the pipeline reads are declared; everything else the server
sends is ignored.
"""
from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field


class StreamDelta(BaseModel):
    role: Optional[str] = None
    content: Optional[str] = Field(None, description="Incremental text produced by the model.")


class StreamChoice(BaseModel):
    index: int = 0
    delta: StreamDelta = Field(default_factory=StreamDelta)
    # "length" means the model ran out of output budget: the input has to be shortened.
    finish_reason: Optional[str] = Field(None, description="Why the model stopped, when it did.")


class StreamChunk(BaseModel):
    """One `data: {...}` event of a streaming chat completion."""

    id: Optional[str] = None
    model: Optional[str] = None
    choices: List[StreamChoice] = Field(default_factory=list)


class ApiErrorDetail(BaseModel):
    """The object under "error" in an API error response."""

    message: str
    type: Optional[str] = None
    code: Optional[Union[str, int]] = None
    param: Optional[str] = None
