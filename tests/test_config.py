"""
Tests for configuration loading and validation.
"""

import os

import pytest

from compl.config import CompletionConfig, ConfigError
from compl.lsp.config import LSPConfig


class TestFromOptions:
    def test_defaults(self):
        config = CompletionConfig.from_options()
        assert config.fuzzy is False
        assert config.completion_timeout == 100
        assert config.info_timeout == 200
        assert config.recency_limit is None

    def test_nested_options_merge_over_defaults(self):
        config = CompletionConfig.from_options({"completion": {"timeout": 50}})
        assert config.completion_timeout == 50
        assert config.info_timeout == 200

    def test_all_options(self):
        config = CompletionConfig.from_options({
            "fuzzy": True,
            "completion": {"timeout": 0},
            "info": {"timeout": 10},
            "recency_limit": 64,
            "snippet_paths": ["~/snippets"],
        })
        assert config.fuzzy is True
        assert config.completion_timeout == 0
        assert config.info_timeout == 10
        assert config.recency_limit == 64
        assert config.snippet_paths == ["~/snippets"]

    @pytest.mark.parametrize("opts", [
        {"fuzzy": "yes"},
        {"completion": {"timeout": "fast"}},
        {"completion": {"timeout": True}},
        {"completion": 100},
        {"info": {"timeout": None}},
        {"snippet_paths": "/one/path"},
        {"recency_limit": "many"},
    ])
    def test_wrong_types_are_rejected(self, opts):
        with pytest.raises(ConfigError):
            CompletionConfig.from_options(opts)

    def test_options_must_be_a_dict(self):
        with pytest.raises(ConfigError):
            CompletionConfig.from_options(["fuzzy"])

    def test_negative_timeout(self):
        with pytest.raises(ConfigError):
            CompletionConfig.from_options({"info": {"timeout": -1}})

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)


class TestFromEnv:
    def test_reads_compl_variables(self, monkeypatch, tmp_path):
        monkeypatch.setenv("COMPL_FUZZY", "true")
        monkeypatch.setenv("COMPL_COMPLETION_TIMEOUT", "30")
        monkeypatch.setenv("COMPL_INFO_TIMEOUT", "300")
        monkeypatch.setenv("COMPL_RECENCY_LIMIT", "10")
        monkeypatch.setenv("COMPL_SNIPPET_PATHS", os.pathsep.join(["/a", "/b"]))
        monkeypatch.setenv("COMPL_LOG_FILE", str(tmp_path / "compl.log"))

        config = CompletionConfig.from_env(dotenv=False)

        assert config.fuzzy is True
        assert config.completion_timeout == 30
        assert config.info_timeout == 300
        assert config.recency_limit == 10
        assert config.snippet_paths == ["/a", "/b"]
        assert config.log_file == str(tmp_path / "compl.log")

    def test_defaults_when_unset(self, monkeypatch):
        for name in ("COMPL_FUZZY", "COMPL_COMPLETION_TIMEOUT", "COMPL_INFO_TIMEOUT",
                     "COMPL_RECENCY_LIMIT", "COMPL_SNIPPET_PATHS", "COMPL_LOG_FILE"):
            monkeypatch.delenv(name, raising=False)

        config = CompletionConfig.from_env(dotenv=False)

        assert config == CompletionConfig()

    def test_invalid_integer(self, monkeypatch):
        monkeypatch.setenv("COMPL_COMPLETION_TIMEOUT", "soon")
        with pytest.raises(ConfigError):
            CompletionConfig.from_env(dotenv=False)

    def test_dotenv_file_is_loaded(self, monkeypatch, tmp_path):
        monkeypatch.delenv("COMPL_INFO_TIMEOUT", raising=False)
        (tmp_path / ".env").write_text("COMPL_INFO_TIMEOUT=250\n")
        monkeypatch.chdir(tmp_path)

        try:
            config = CompletionConfig.from_env()
        finally:
            os.environ.pop("COMPL_INFO_TIMEOUT", None)

        assert config.info_timeout == 250


class TestLSPConfig:
    def test_filetype_from_extension(self):
        config = LSPConfig(environ={})
        assert config.filetype_for_file("/src/app.py") == "python"
        assert config.filetype_for_file("init.lua") == "lua"
        assert config.filetype_for_file("README") is None

    def test_command_override(self):
        config = LSPConfig(environ={"COMPL_LSP_PYTHON_CMD": "pylsp --check-parent-process"})
        assert config._servers["python"].command == ["pylsp", "--check-parent-process"]
        # Defaults are not mutated
        assert LSPConfig(environ={})._servers["python"].command[0] == "pyright-langserver"

    def test_missing_server_is_unavailable(self):
        config = LSPConfig(environ={"COMPL_LSP_GO_CMD": "definitely-not-installed-ls"})
        assert config.get_server("go") is None
        assert config.list_available_servers()["go"] is False

    def test_install_hint(self):
        config = LSPConfig(environ={})
        assert "pyright" in config.get_install_hint("python")
        assert config.get_install_hint("cobol") == "Install an LSP server for cobol"
