# main.py
"""
Entry point.

Translates Markdown files with an OpenAI-compatible chat-completions model:
1) Long code blocks are elided behind placeholders (never sent to the model)
2) The document is split into fragments at blank lines
3) Fragments are translated concurrently over streaming requests, with
   rate limiting, retries and bisection of fragments the model finds too long
4) Code blocks are restored and the result is written to the output path

Configuration comes from a dotenv-style config file (OPENAI_API_KEY, MODEL_NAME, ...)
and a prompt.md holding the translation instruction. See mdtrans.config.

Usage:
    python main.py [options] <file>...
"""
from __future__ import annotations

from mdtrans.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
