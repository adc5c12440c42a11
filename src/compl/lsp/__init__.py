"""
LSP (Language Server Protocol) module for compl.

Talks to external language servers for completion items:
- textDocument/completion
- completionItem/resolve
- Document synchronization (didOpen, didChange, didClose)
"""

from compl.lsp.client import LSPClient, LSPResponseError
from compl.lsp.config import LSPConfig, LSPServerConfig, get_lsp_config

__all__ = [
    "LSPClient",
    "LSPResponseError",
    "LSPConfig",
    "LSPServerConfig",
    "get_lsp_config",
]
