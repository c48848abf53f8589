# src/mdtrans/config.py
"""
Configuration loading.

Sources, highest precedence first:
- command-line arguments
- the first config file found (dotenv syntax):
    ./.chatgpt-md-translator
    ./.env
    $XDG_CONFIG_HOME/chatgpt-md-translator/config  (default ~/.config)
    ~/.chatgpt-md-translator
- built-in defaults

The prompt (translation instruction) is read from the first existing prompt.md
location, following the same lookup order.
"""
from __future__ import annotations

import logging
import os
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple

from dotenv import dotenv_values
from pydantic import BaseModel, Field, ValidationError

from mdtrans.fs_utils import read_text_file

logger = logging.getLogger("mdtrans.config")

APP_NAME = "chatgpt-md-translator"
DEFAULT_API_ENDPOINT = "https://api.openai.com/v1/chat/completions"

OverwritePolicy = Literal["skip", "abort", "overwrite"]
OVERWRITE_POLICIES: Tuple[str, ...] = ("skip", "abort", "overwrite")

MODEL_SHORTHANDS = {
    "3": "gpt-3.5-turbo",
    "3large": "gpt-3.5-turbo-16k",
    "4": "gpt-4",
    "4large": "gpt-4-32k",
}

_PLACEHOLDER_RE = re.compile(r"\{(\w+?)\}")


class ConfigError(RuntimeError):
    pass


class Config(BaseModel):
    api_endpoint: str = Field(DEFAULT_API_ENDPOINT, description="Full chat-completions URL.")
    api_key: str = Field(..., description="Bearer token sent with every request.")
    prompt: str = Field(..., description="Translation instruction sent as the first user turn.")
    model: str = "gpt-3.5-turbo"
    base_dir: Optional[str] = None
    api_call_interval: float = Field(0, ge=0, description="Seconds between API call starts.")
    quiet: bool = False
    fragment_size: int = Field(2048, ge=0, description="Soft target size of a fragment (characters).")
    temperature: float = 0.1
    code_block_preservation_lines: int = Field(5, description="Code blocks with at least this many lines are elided.")
    out: Optional[str] = None
    output_file_pattern: Optional[str] = None
    overwrite_policy: OverwritePolicy = "overwrite"
    https_proxy: Optional[str] = None
    log_file: Optional[str] = None


def _config_home(home: Path, environ: Mapping[str, str]) -> Path:
    xdg = environ.get("XDG_CONFIG_HOME")
    return Path(xdg) if xdg else home / ".config"


def find_file(paths: Sequence[Path]) -> Optional[Path]:
    for path in paths:
        if path.is_file():
            return path
    return None


def find_config_file(cwd: Path, home: Path, environ: Mapping[str, str]) -> Optional[Path]:
    return find_file([
        cwd / f".{APP_NAME}",
        cwd / ".env",
        _config_home(home, environ) / APP_NAME / "config",
        home / f".{APP_NAME}",
    ])


def find_prompt_file(cwd: Path, home: Path, environ: Mapping[str, str]) -> Optional[Path]:
    return find_file([
        cwd / "prompt.md",
        cwd / ".prompt.md",
        _config_home(home, environ) / APP_NAME / "prompt.md",
        home / f".{APP_NAME}-prompt.md",
    ])


def resolve_model_shorthand(model: str) -> str:
    return MODEL_SHORTHANDS.get(model, model)


def _to_num(value: Any) -> Optional[float]:
    """Parse a number; None/empty/invalid values yield None so the next source wins."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _first_num(*values: Any, default: float) -> float:
    for value in values:
        num = _to_num(value)
        if num is not None:
            return num
    return default


def _non_empty(value: Optional[str]) -> Optional[str]:
    return value if value else None


def _check_overwrite_policy(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    if value not in OVERWRITE_POLICIES:
        raise ConfigError(f"Invalid overwrite policy: {value}")
    return value


def load_config(
    args: Mapping[str, Any],
    cwd: Optional[Path] = None,
    home: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Tuple[Config, List[str]]:
    """
    Build the Config from CLI arguments, the config file and defaults.

    `args` uses argparse destination names (model, fragment_size, temperature,
    interval, quiet, out, out_suffix, overwrite_policy, log_file).
    Returns (config, warnings). Raises ConfigError on fatal problems.
    """
    cwd = cwd or Path.cwd()
    home = home or Path.home()
    environ = os.environ if environ is None else environ
    warnings: List[str] = []

    config_path = find_config_file(cwd, home, environ)
    if config_path is None:
        raise ConfigError("Config file not found.")
    logger.debug("using config file %s", config_path)
    conf: Dict[str, Optional[str]] = dotenv_values(config_path)

    api_key = conf.get("OPENAI_API_KEY")
    if not api_key:
        raise ConfigError("OPENAI_API_KEY is not set in config file.")

    prompt_path = find_prompt_file(cwd, home, environ)
    if prompt_path is None:
        raise ConfigError("Prompt file not found.")

    out_suffix = _non_empty(conf.get("OUT_SUFFIX")) or _non_empty(args.get("out_suffix"))
    if out_suffix:
        warnings.append("OUT_SUFFIX is deprecated. Use OUTPUT_FILE_PATTERN instead.")

    output_file_pattern = _non_empty(conf.get("OUTPUT_FILE_PATTERN")) or (
        f"{{main}}{out_suffix}" if out_suffix else None
    )

    overwrite_policy = (
        _check_overwrite_policy(args.get("overwrite_policy"))
        or _check_overwrite_policy(conf.get("OVERWRITE_POLICY"))
        or "overwrite"
    )

    quiet = args.get("quiet")
    if quiet is None:
        quiet = not sys.stdout.isatty()

    try:
        config = Config(
            api_endpoint=_non_empty(conf.get("API_ENDPOINT")) or DEFAULT_API_ENDPOINT,
            api_key=api_key,
            prompt=read_text_file(prompt_path),
            model=resolve_model_shorthand(args.get("model") or conf.get("MODEL_NAME") or "3"),
            base_dir=_non_empty(conf.get("BASE_DIR")),
            api_call_interval=_first_num(args.get("interval"), conf.get("API_CALL_INTERVAL"), default=0),
            quiet=bool(quiet),
            fragment_size=int(_first_num(args.get("fragment_size"), conf.get("FRAGMENT_TOKEN_SIZE"), default=2048)),
            temperature=_first_num(args.get("temperature"), conf.get("TEMPERATURE"), default=0.1),
            code_block_preservation_lines=int(_first_num(conf.get("CODE_BLOCK_PRESERVATION_LINES"), default=5)),
            out=_non_empty(args.get("out")),
            output_file_pattern=output_file_pattern,
            overwrite_policy=overwrite_policy,
            https_proxy=_non_empty(conf.get("HTTPS_PROXY")) or _non_empty(environ.get("HTTPS_PROXY")),
            log_file=_non_empty(args.get("log_file")) or _non_empty(conf.get("LOG_FILE")),
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    if config.output_file_pattern and not _PLACEHOLDER_RE.search(config.output_file_pattern):
        warnings.append("OUTPUT_FILE_PATTERN does not contain any placeholder.")

    return config, warnings
