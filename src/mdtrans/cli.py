# src/mdtrans/cli.py
"""
Command-line interface.

Workflow per input file (files are processed one after another):
1) Resolve the input and output paths, apply the overwrite policy
2) Elide long code blocks and split the document into fragments
3) Translate all fragments concurrently, showing a live status line
4) Restore the code blocks and write the result

Exit codes: 0 on success, 1 on any fatal error.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import time
from pathlib import Path
from typing import List, Optional, Sequence

from rich.console import Console
from rich.markup import escape

from mdtrans.abort import AbortController, AbortSignal
from mdtrans.config import OVERWRITE_POLICIES, Config, ConfigError, load_config
from mdtrans.fs_utils import (
    FileAccessError,
    check_file_writable,
    format_time,
    read_text_file,
    resolve_out_file_path,
    write_markdown,
)
from mdtrans.llm import ApiCaller, configure_api_caller
from mdtrans.logging_utils import setup_logging
from mdtrans.markdown import replace_code_blocks, restore_code_blocks, split_string_at_blank_lines
from mdtrans.render import StatusPrinter
from mdtrans.status import ErrorStatus
from mdtrans.translate import TranslationError, translate_multiple

logger = logging.getLogger("mdtrans.cli")

PROG = "chatgpt-md-translator"
DOCS_URL = "https://github.com/smikitky/chatgpt-md-translator"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Translate Markdown files with a chat-completions model, keeping code blocks intact.",
        epilog=f"Docs: {DOCS_URL}",
    )
    parser.add_argument("files", nargs="*", metavar="file", help="Markdown file(s) to translate.")
    parser.add_argument("-m", "--model", help="Model to use (shorthands: 3, 3large, 4, 4large).")
    parser.add_argument("-f", "--fragment-size", type=float, help="Soft target size of each fragment.")
    parser.add_argument("-t", "--temperature", type=float, help="Sampling temperature.")
    parser.add_argument("-i", "--interval", type=float, help="Seconds between API call starts.")
    parser.add_argument("-q", "--quiet", action="store_true", default=None, help="Suppress status messages.")
    parser.add_argument("-o", "--out", help="Output file (single input only).")
    parser.add_argument("--out-suffix", help=argparse.SUPPRESS)
    parser.add_argument(
        "-w",
        "--overwrite-policy",
        choices=OVERWRITE_POLICIES,
        help="What to do when the output file already exists.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug information to stderr.")
    parser.add_argument("--log-file", help="Also write logs to this file.")
    return parser


def _resolve_input(file: str, config: Config) -> str:
    return os.path.abspath(os.path.join(config.base_dir or os.getcwd(), file))


def _resolve_output(file_path: str, config: Config) -> str:
    if config.out:
        return os.path.abspath(os.path.join(config.base_dir or os.getcwd(), config.out))
    return resolve_out_file_path(file_path, config.base_dir, config.output_file_pattern)


async def translate_file(
    file: str,
    config: Config,
    call_api: ApiCaller,
    console: Console,
    abort_signal: Optional[AbortSignal] = None,
) -> Optional[str]:
    """Translate one file. Returns the written path, or None if it was skipped."""
    file_path = _resolve_input(file, config)
    out_file = _resolve_output(file_path, config)

    if os.path.exists(out_file):
        if config.overwrite_policy == "abort":
            raise FileAccessError(f"Output file already exists: {out_file}")
        if config.overwrite_policy == "skip":
            console.print(f"[yellow]Skipped (output exists): {escape(out_file)}[/]")
            return None
    check_file_writable(out_file)

    markdown = read_text_file(file_path)
    replaced_md, code_blocks = replace_code_blocks(markdown, config.code_block_preservation_lines)
    fragments = split_string_at_blank_lines(replaced_md, config.fragment_size) or [replaced_md]
    logger.info("%s: %d fragment(s), %d code block(s) elided", file_path, len(fragments), len(code_blocks))

    console.print(f"[cyan]Translating: {escape(file_path)}[/]")
    if out_file != file_path:
        console.print(f"[cyan]To: {escape(out_file)}[/]")
    console.print(f"[bold]Model:[/] {escape(config.model)} [bold]Temperature:[/] {config.temperature}\n")

    t0 = time.perf_counter()
    with StatusPrinter(console, quiet=config.quiet) as printer:
        result = await translate_multiple(call_api, fragments, config, printer.update, abort_signal)

    if abort_signal is not None and abort_signal.aborted:
        raise TranslationError("Translation aborted.")
    if isinstance(result, ErrorStatus):
        raise TranslationError(result.message or "Translation failed.")

    write_markdown(restore_code_blocks(result.translation, code_blocks) + "\n", out_file)
    elapsed_ms = (time.perf_counter() - t0) * 1000.0
    console.print(f"[green]Translation completed in {format_time(elapsed_ms)}.[/]")
    console.print(f"File saved as {escape(out_file)}.")
    return out_file


async def run(
    files: Sequence[str],
    config: Config,
    console: Console,
    call_api: Optional[ApiCaller] = None,
) -> List[str]:
    """Translate `files` sequentially with one shared (rate-limited) API caller."""
    if call_api is None:
        call_api = configure_api_caller(
            api_endpoint=config.api_endpoint,
            api_key=config.api_key,
            rate_limit=config.api_call_interval,
            https_proxy=config.https_proxy,
        )

    controller = AbortController()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, controller.abort)
        sigint_installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        # Not available on this platform / thread: Ctrl+C falls back to KeyboardInterrupt.
        sigint_installed = False

    written: List[str] = []
    try:
        for file in files:
            out_file = await translate_file(file, config, call_api, console, controller.signal)
            if out_file is not None:
                written.append(out_file)
    finally:
        if sigint_installed:
            loop.remove_signal_handler(signal.SIGINT)
    return written


def main(argv: Optional[Sequence[str]] = None) -> int:
    console = Console()
    err_console = Console(stderr=True)
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.files:
        err_console.print("[red]Specify at least one markdown file.[/]")
        err_console.print(f"[yellow]{escape(parser.format_usage().strip())}[/]")
        return 1
    if args.out and len(args.files) > 1:
        err_console.print("[red]--out cannot be used with multiple input files.[/]")
        return 1

    try:
        config, warnings = load_config(vars(args))
        setup_logging(
            level="DEBUG" if args.verbose else "WARNING",
            log_file=Path(config.log_file) if config.log_file else None,
        )
        for warning in warnings:
            err_console.print("[black on yellow]Warn[/]", f"[yellow]{escape(warning)}[/]")
        asyncio.run(run(args.files, config, console))
    except (ConfigError, FileAccessError, TranslationError) as e:
        err_console.print("[white on red]Error[/]", f"[red]{escape(str(e))}[/]")
        return 1
    except Exception as e:
        logger.debug("unexpected failure", exc_info=True)
        err_console.print("[white on red]Error[/]", f"[red]{escape(str(e))}[/]")
        return 1
    return 0
