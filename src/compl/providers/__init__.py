"""
Completion providers shipped with compl.
"""

from compl.providers.lsp import LSPCompletionProvider
from compl.providers.snippets import build_snippet_provider, load_snippet_items
from compl.providers.static import StaticProvider

__all__ = [
    "LSPCompletionProvider",
    "StaticProvider",
    "build_snippet_provider",
    "load_snippet_items",
]
