# src/mdtrans/markdown.py
"""
Markdown transformer (deterministic).

Purpose:
- Elide long fenced code blocks behind short placeholders before translation,
  and restore them byte-for-byte afterwards.
- Split a document into fragments at blank lines, never inside a code block.

Placeholder format:
    <indent>```<info>
    <indent>(((((<hex id>)))))
    <indent>```
"""
from __future__ import annotations

import re
import secrets
from typing import Dict, List, Optional, Tuple

# Placeholder id -> original code block body (lines between the fences).
CodeBlocks = Dict[str, str]

# A fenced block starts at "<indent>```<info>" and ends at the next line equal to "<indent>```"
# (a trailing "\r" is allowed, for CRLF documents).
# The body group is optional so that an empty block ("```\n```") is not paired with a later fence.
_CODE_BLOCK_RE = re.compile(r"^([ \t]*)```[^\n]*\n(?:([\s\S]*?)\n)?\1```(\r?)$", re.MULTILINE)

_PLACEHOLDER_RE = re.compile(r"\(\(\(\(\(([a-z0-9]+)\)\)\)\)\)")

FENCE = "```"


def _placeholder(block_id: str) -> str:
    return f"((((({block_id})))))"


def _new_block_id(md_content: str, code_blocks: CodeBlocks) -> str:
    # 8 random bytes as lowercase hex; regenerate on the (unlikely) clash.
    while True:
        block_id = secrets.token_hex(8)
        if block_id not in code_blocks and _placeholder(block_id) not in md_content:
            return block_id


def replace_code_blocks(md_content: str, min_lines: int = 5) -> Tuple[str, CodeBlocks]:
    """
    Replace fenced code blocks of at least `min_lines` lines (fences included)
    with placeholders.

    Returns (elided markdown, code block table).
    Blocks that cannot be restored exactly (empty body, or a first body line
    that does not carry the fence indentation) are left inline.
    """
    code_blocks: CodeBlocks = {}

    def _replace(match: "re.Match[str]") -> str:
        whole = match.group(0)
        indent = match.group(1)
        body = match.group(2)
        cr = match.group(3)
        lines = whole.split("\n")
        if len(lines) < min_lines or body is None or not body.startswith(indent):
            return whole
        block_id = _new_block_id(md_content, code_blocks)
        # The indent of the first body line lives on the placeholder line.
        code_blocks[block_id] = body[len(indent):]
        return f"{lines[0]}\n{indent}{_placeholder(block_id)}\n{indent}{FENCE}{cr}"

    output = _CODE_BLOCK_RE.sub(_replace, md_content)
    return output, code_blocks


def restore_code_blocks(md_content: str, code_blocks: CodeBlocks) -> str:
    """Put the elided code block bodies back. Unknown ids are left intact."""
    return _PLACEHOLDER_RE.sub(lambda m: code_blocks.get(m.group(1), m.group(0)), md_content)


def _is_fence(line: str) -> bool:
    return line.lstrip().startswith(FENCE)


def split_string_at_blank_lines(text: str, fragment_size: int = 2048) -> Optional[List[str]]:
    """
    Split text into fragments at blank lines outside code blocks.

    - fragment_size > 0: greedy packing. When the current fragment plus the
      blank line would exceed fragment_size, the fragment is flushed and the
      next one starts with that blank line. Never returns an empty list.
    - fragment_size == 0: bisection. Split once at the blank line closest to
      the middle. Returns None if there is no usable split point.

    In both modes "\\n".join(result) == text.
    """
    lines = text.split("\n")
    in_code_block = False
    current: List[str] = []
    fragments: List[str] = []

    half = len(lines) // 2
    nearest_diff = float("inf")
    nearest_index = -1

    for i, line in enumerate(lines):
        if _is_fence(line):
            in_code_block = not in_code_block

        if not in_code_block and line.strip() == "":
            if fragment_size > 0:
                if len("\n".join(current)) + len(line) > fragment_size:
                    fragments.append("\n".join(current))
                    current = []
            elif abs(half - i) < nearest_diff:
                nearest_diff = abs(half - i)
                nearest_index = i
        current.append(line)

    if fragment_size > 0:
        fragments.append("\n".join(current))
        return fragments

    # A split at line 0 would produce an empty head and no progress.
    if nearest_index <= 0:
        return None
    return ["\n".join(lines[:nearest_index]), "\n".join(lines[nearest_index:])]
