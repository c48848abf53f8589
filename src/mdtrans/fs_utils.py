# src/mdtrans/fs_utils.py
"""
File-system helpers for the CLI.

- Friendlier errors for unreadable inputs / unwritable outputs.
- Output path templating: "{basedir}/i18n/ja/{relmain}.{ext}" style patterns.
"""
from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Dict, Optional, Union

PathLike = Union[str, Path]

_PLACEHOLDER_RE = re.compile(r"\{(\w+?)\}")


class FileAccessError(RuntimeError):
    pass


def read_text_file(path: PathLike) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except IsADirectoryError as e:
        raise FileAccessError(f"The specified path is a directory: {path}") from e
    except FileNotFoundError as e:
        raise FileAccessError(f"File not found: {path}") from e
    except PermissionError as e:
        raise FileAccessError(f"Permission denied: {path}") from e


def check_file_writable(path: PathLike) -> None:
    """Raise FileAccessError unless `path` can be (over)written."""
    path = Path(path)
    if path.exists():
        if path.is_file() and os.access(path, os.W_OK):
            return
        raise FileAccessError(f"File is not writable: {path}")

    directory = path.parent
    if not directory.is_dir():
        raise FileAccessError(f"Directory does not exist: {directory}")
    if not os.access(directory, os.W_OK):
        raise FileAccessError(f"Directory is not writable: {directory}")


def extract_placeholders(input_file_path: str, base_dir: Optional[str]) -> Dict[str, str]:
    """
    Placeholder values for an input file:
      dir, main (dir + basename), basename, filename, ext (no dot),
      plus basedir, reldir, relmain when base_dir is known.
    """
    directory = os.path.dirname(input_file_path)
    filename = os.path.basename(input_file_path)
    basename, ext = os.path.splitext(filename)
    result = {
        "dir": directory,
        "main": os.path.join(directory, basename),
        "basename": basename,
        "filename": filename,
        "ext": ext[1:] if ext else "",
    }
    if base_dir is not None:
        reldir = os.path.relpath(directory, base_dir)
        if reldir == ".":
            reldir = ""
        result.update({
            "basedir": base_dir,
            "reldir": reldir,
            "relmain": os.path.join(reldir, basename),
        })
    return result


def resolve_out_file_path(
    input_file_path: str,
    base_dir: Optional[str],
    output_file_pattern: Optional[str],
) -> str:
    """Expand the output pattern for an input file. Unknown placeholders stay literal."""
    if output_file_pattern is None:
        return input_file_path
    placeholders = extract_placeholders(input_file_path, base_dir)
    return _PLACEHOLDER_RE.sub(
        lambda m: placeholders.get(m.group(1), m.group(0)),
        output_file_pattern,
    )


def format_time(msec: float) -> str:
    secs = int(msec // 1000)
    if secs < 60:
        return f"{secs} second{'' if secs == 1 else 's'}"
    return f"{secs // 60}:{secs % 60:02d}"


# The output directory is expected to exist (see check_file_writable).
def write_markdown(text: str, path: PathLike) -> None:
    Path(path).write_text(text, encoding="utf-8")
