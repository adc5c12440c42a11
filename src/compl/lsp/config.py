"""
LSP server configuration - maps filetypes to the servers that complete them.
"""

import os
import shlex
import shutil
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, List, Optional


@dataclass
class LSPServerConfig:
    """How to launch a language server for one filetype."""

    language_id: str  # LSP languageId sent in didOpen
    extensions: List[str]
    command: List[str]
    initialization_options: Optional[Dict] = None
    install_hint: str = ""

    def is_available(self) -> bool:
        """Check if the server executable is on PATH."""
        if not self.command:
            return False
        return shutil.which(self.command[0]) is not None


DEFAULT_LSP_SERVERS: Dict[str, LSPServerConfig] = {
    "python": LSPServerConfig(
        language_id="python",
        extensions=[".py", ".pyi"],
        command=["pyright-langserver", "--stdio"],
        install_hint="pip install pyright",
    ),
    "lua": LSPServerConfig(
        language_id="lua",
        extensions=[".lua"],
        command=["lua-language-server"],
        install_hint="Install lua-language-server (e.g., brew install lua-language-server)",
    ),
    "typescript": LSPServerConfig(
        language_id="typescript",
        extensions=[".ts", ".tsx"],
        command=["typescript-language-server", "--stdio"],
        install_hint="npm install -g typescript-language-server typescript",
    ),
    "javascript": LSPServerConfig(
        language_id="javascript",
        extensions=[".js", ".jsx", ".mjs"],
        command=["typescript-language-server", "--stdio"],
        install_hint="npm install -g typescript-language-server typescript",
    ),
    "go": LSPServerConfig(
        language_id="go",
        extensions=[".go"],
        command=["gopls", "serve"],
        install_hint="go install golang.org/x/tools/gopls@latest",
    ),
    "rust": LSPServerConfig(
        language_id="rust",
        extensions=[".rs"],
        command=["rust-analyzer"],
        install_hint="rustup component add rust-analyzer",
    ),
    "c": LSPServerConfig(
        language_id="c",
        extensions=[".c", ".h"],
        command=["clangd"],
        install_hint="Install clangd (e.g., apt install clangd)",
    ),
    "cpp": LSPServerConfig(
        language_id="cpp",
        extensions=[".cpp", ".hpp", ".cc", ".cxx"],
        command=["clangd"],
        install_hint="Install clangd (e.g., apt install clangd)",
    ),
}


class LSPConfig:
    """Registry of language servers, with COMPL_LSP_<LANG>_CMD overrides."""

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        self._servers = dict(DEFAULT_LSP_SERVERS)
        self._apply_overrides(os.environ if environ is None else environ)

    def _apply_overrides(self, environ):
        # COMPL_LSP_PYTHON_CMD="pylsp --check-parent-process"
        for language, server in list(self._servers.items()):
            custom_cmd = environ.get(f"COMPL_LSP_{language.upper()}_CMD")
            if custom_cmd:
                self._servers[language] = replace(server, command=shlex.split(custom_cmd))

    def filetype_for_file(self, file_path: str) -> Optional[str]:
        """Filetype name for a path, from its extension."""
        ext = Path(file_path).suffix.lower()
        for language, server in self._servers.items():
            if ext in server.extensions:
                return language
        return None

    def get_server(self, filetype: str) -> Optional[LSPServerConfig]:
        """Server config for a filetype, or None when it is unknown or not installed."""
        server = self._servers.get(filetype.lower())
        return server if server and server.is_available() else None

    def get_install_hint(self, filetype: str) -> str:
        server = self._servers.get(filetype.lower())
        if server and server.install_hint:
            return server.install_hint
        return f"Install an LSP server for {filetype}"

    def list_available_servers(self) -> Dict[str, bool]:
        """All configured filetypes and whether their server is installed."""
        return {language: server.is_available() for language, server in self._servers.items()}

    def register_server(self, filetype: str, config: LSPServerConfig):
        self._servers[filetype] = config


_lsp_config: Optional[LSPConfig] = None


def get_lsp_config() -> LSPConfig:
    """Get the global LSP configuration."""
    global _lsp_config
    if _lsp_config is None:
        _lsp_config = LSPConfig()
    return _lsp_config
