"""
Configuration Loading Tests

Every test runs against a temporary working directory and home directory, so
real user configuration never leaks in.
"""

# Standard library
from pathlib import Path

# Third-party
import pytest

# Local application
from mdtrans.config import (
    DEFAULT_API_ENDPOINT,
    ConfigError,
    find_config_file,
    load_config,
    resolve_model_shorthand,
)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def dirs(tmp_path):
    cwd = tmp_path / "project"
    home = tmp_path / "home"
    cwd.mkdir()
    home.mkdir()
    return cwd, home


@pytest.fixture
def setup_files(dirs):
    """Write a config file and a prompt file into the working directory."""
    cwd, _ = dirs

    def _setup(env_text="OPENAI_API_KEY=sk-file\n", prompt="Translate into Japanese."):
        (cwd / ".env").write_text(env_text, encoding="utf-8")
        if prompt is not None:
            (cwd / "prompt.md").write_text(prompt, encoding="utf-8")
        return cwd

    return _setup


@pytest.fixture
def load(dirs):
    cwd, home = dirs

    def _load(args=None, environ=None):
        return load_config(args or {}, cwd=cwd, home=home, environ=environ or {})

    return _load


# ============================================================================
# Tests
# ============================================================================

class TestLoadConfig:

    def test_defaults(self, setup_files, load):
        setup_files()
        config, warnings = load({"quiet": True})

        assert warnings == []
        assert config.api_key == "sk-file"
        assert config.prompt == "Translate into Japanese."
        assert config.api_endpoint == DEFAULT_API_ENDPOINT
        assert config.model == "gpt-3.5-turbo"
        assert config.fragment_size == 2048
        assert config.temperature == 0.1
        assert config.api_call_interval == 0
        assert config.code_block_preservation_lines == 5
        assert config.overwrite_policy == "overwrite"
        assert config.output_file_pattern is None
        assert config.quiet is True

    def test_file_values(self, setup_files, load):
        setup_files(
            "OPENAI_API_KEY=sk-file\n"
            "API_ENDPOINT=https://proxy.test/v1/chat/completions\n"
            "MODEL_NAME=4\n"
            "FRAGMENT_TOKEN_SIZE=1000\n"
            "TEMPERATURE=0.5\n"
            "API_CALL_INTERVAL=2\n"
            "CODE_BLOCK_PRESERVATION_LINES=10\n"
            "OUTPUT_FILE_PATTERN={main}-ja.{ext}\n"
            "OVERWRITE_POLICY=skip\n"
            "BASE_DIR=/docs\n"
        )
        config, warnings = load({"quiet": False})

        assert warnings == []
        assert config.api_endpoint == "https://proxy.test/v1/chat/completions"
        assert config.model == "gpt-4"
        assert config.fragment_size == 1000
        assert config.temperature == 0.5
        assert config.api_call_interval == 2
        assert config.code_block_preservation_lines == 10
        assert config.output_file_pattern == "{main}-ja.{ext}"
        assert config.overwrite_policy == "skip"
        assert config.base_dir == "/docs"

    def test_arguments_override_file(self, setup_files, load):
        setup_files("OPENAI_API_KEY=sk-file\nMODEL_NAME=4\nTEMPERATURE=0.5\nOVERWRITE_POLICY=skip\n")
        config, _ = load({
            "model": "gpt-4o",
            "temperature": 0.0,
            "fragment_size": 300.0,
            "interval": 1.5,
            "overwrite_policy": "abort",
            "out": "out.md",
        })

        assert config.model == "gpt-4o"
        assert config.temperature == 0.0
        assert config.fragment_size == 300
        assert config.api_call_interval == 1.5
        assert config.overwrite_policy == "abort"
        assert config.out == "out.md"

    def test_invalid_number_falls_back(self, setup_files, load):
        setup_files("OPENAI_API_KEY=sk-file\nTEMPERATURE=hot\n")
        config, _ = load()
        assert config.temperature == 0.1

    def test_out_suffix_is_deprecated(self, setup_files, load):
        setup_files("OPENAI_API_KEY=sk-file\nOUT_SUFFIX=.ja.md\n")
        config, warnings = load()

        assert config.output_file_pattern == "{main}.ja.md"
        assert any("deprecated" in w for w in warnings)

    def test_pattern_without_placeholder_warns(self, setup_files, load):
        setup_files("OPENAI_API_KEY=sk-file\nOUTPUT_FILE_PATTERN=out.md\n")
        _, warnings = load()
        assert warnings == ["OUTPUT_FILE_PATTERN does not contain any placeholder."]

    def test_https_proxy_from_environment(self, setup_files, load):
        setup_files()
        config, _ = load(environ={"HTTPS_PROXY": "http://proxy.test:8080"})
        assert config.https_proxy == "http://proxy.test:8080"

    def test_https_proxy_file_wins(self, setup_files, load):
        setup_files("OPENAI_API_KEY=sk-file\nHTTPS_PROXY=http://file.test:3128\n")
        config, _ = load(environ={"HTTPS_PROXY": "http://env.test:8080"})
        assert config.https_proxy == "http://file.test:3128"


class TestConfigErrors:

    def test_missing_config_file(self, load):
        with pytest.raises(ConfigError, match="Config file not found"):
            load()

    def test_missing_api_key(self, setup_files, load):
        setup_files("MODEL_NAME=4\n")
        with pytest.raises(ConfigError, match="OPENAI_API_KEY"):
            load()

    def test_missing_prompt(self, setup_files, load):
        setup_files(prompt=None)
        with pytest.raises(ConfigError, match="Prompt file not found"):
            load()

    def test_invalid_overwrite_policy(self, setup_files, load):
        setup_files("OPENAI_API_KEY=sk-file\nOVERWRITE_POLICY=maybe\n")
        with pytest.raises(ConfigError, match="Invalid overwrite policy: maybe"):
            load()

    def test_negative_fragment_size(self, setup_files, load):
        setup_files()
        with pytest.raises(ConfigError):
            load({"fragment_size": -1})


class TestLookup:

    def test_xdg_config_home(self, dirs, load):
        cwd, home = dirs
        xdg = home / "xdg"
        app_dir = xdg / "chatgpt-md-translator"
        app_dir.mkdir(parents=True)
        (app_dir / "config").write_text("OPENAI_API_KEY=sk-xdg\n", encoding="utf-8")
        (app_dir / "prompt.md").write_text("Prompt from XDG.", encoding="utf-8")

        config, _ = load(environ={"XDG_CONFIG_HOME": str(xdg)})

        assert config.api_key == "sk-xdg"
        assert config.prompt == "Prompt from XDG."

    def test_dotfile_in_cwd_wins_over_env(self, dirs):
        cwd, home = dirs
        (cwd / ".env").write_text("OPENAI_API_KEY=a\n", encoding="utf-8")
        (cwd / ".chatgpt-md-translator").write_text("OPENAI_API_KEY=b\n", encoding="utf-8")

        assert find_config_file(cwd, home, {}) == cwd / ".chatgpt-md-translator"

    def test_home_dotfile(self, dirs):
        cwd, home = dirs
        (home / ".chatgpt-md-translator").write_text("OPENAI_API_KEY=a\n", encoding="utf-8")

        assert find_config_file(cwd, home, {}) == home / ".chatgpt-md-translator"
        assert find_config_file(cwd, Path(home / "missing"), {}) is None


def test_model_shorthands():
    assert resolve_model_shorthand("3") == "gpt-3.5-turbo"
    assert resolve_model_shorthand("3large") == "gpt-3.5-turbo-16k"
    assert resolve_model_shorthand("4") == "gpt-4"
    assert resolve_model_shorthand("4large") == "gpt-4-32k"
    assert resolve_model_shorthand("gpt-4o-mini") == "gpt-4o-mini"
