"""
compl completion engine.

Aggregates completion items from several asynchronous providers, filters and
ranks them, and runs the acceptance side effects.
"""

from compl.completion.engine import CompletionEngine
from compl.completion.host import CompletionProvider, SnippetExpander, TextSurface
from compl.completion.protocol import (
    CompletionItem,
    CompletionItemKind,
    ProviderResponse,
)
from compl.completion.ranking import RankedCandidate, find_start_column, rank
from compl.completion.recency import AcceptanceRecord

__all__ = [
    "AcceptanceRecord",
    "CompletionEngine",
    "CompletionItem",
    "CompletionItemKind",
    "CompletionProvider",
    "ProviderResponse",
    "RankedCandidate",
    "SnippetExpander",
    "TextSurface",
    "find_start_column",
    "rank",
]
