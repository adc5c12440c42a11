"""
Candidate filtering and ranking.

Both entry points are pure functions over the cached provider responses:
find_start_column() answers where the completed word starts, rank() turns
items into the ordered candidate list for a query. Neither performs I/O.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Tuple

from compl.completion.protocol import (
    CompletionItem,
    CompletionItemKind,
    ProviderResponse,
    first_present,
)
from compl.completion.recency import AcceptanceRecord

FuzzyMatcher = Callable[[str, str], bool]

_KEYWORD_TAIL = re.compile(r"\w*$")


@dataclass
class RankedCandidate:
    """A filtered item ready for display."""

    provider_id: str
    item: CompletionItem
    display_word: str
    is_exact_match: bool
    overtype_replacement_length: int = 0

    @property
    def label(self) -> str:
        return self.item.label

    @property
    def kind_name(self) -> str:
        return CompletionItemKind.name_of(self.item.kind)


def subsequence_match(text: str, query: str) -> bool:
    """Default fuzzy matcher: every query character appears in order (case-insensitive)."""
    pattern = ".*?".join(map(re.escape, query))
    return re.search(pattern, text, re.IGNORECASE) is not None


def match_text(item: CompletionItem) -> str:
    """Text the query is matched against."""
    return first_present(item.filter_text, item.edit_text, item.insert_text, item.label) or ""


def display_word(item: CompletionItem) -> str:
    """Text inserted into the buffer when the item is accepted."""
    if item.kind == CompletionItemKind.Snippet:
        return item.label or ""
    return first_present(item.edit_text, item.insert_text, item.label) or ""


def matches(text: str, query: str, fuzzy: bool, matcher: FuzzyMatcher = subsequence_match) -> bool:
    if fuzzy:
        return text.startswith(query[:1]) and (query == "" or matcher(text, query))
    return text.startswith(query)


def _kind_key(kind: Optional[int]) -> Tuple[int, int]:
    # Snippet first, other kinds by ordinal, then Text, then no kind
    if kind is None:
        return (3, 0)
    if kind == CompletionItemKind.Snippet:
        return (0, 0)
    if kind == CompletionItemKind.Text:
        return (2, 0)
    return (1, int(kind))


def _sort_key(candidate: RankedCandidate, recency: Optional[AcceptanceRecord]):
    item = candidate.item
    last = recency.last_accepted(item.label) if recency is not None else -1.0
    sort_text = item.sort_text
    return (
        not candidate.is_exact_match,
        -last,
        _kind_key(item.kind),
        sort_text is None,
        sort_text.lower() if sort_text is not None else "",
        len(item.label),
    )


def rank(
    responses: Mapping[str, ProviderResponse],
    query: str,
    fuzzy: bool = False,
    text_after_cursor: str = "",
    recency: Optional[AcceptanceRecord] = None,
    matcher: FuzzyMatcher = subsequence_match,
) -> List[RankedCandidate]:
    """
    Filter and order every item of every provider for a query.

    Args:
        responses: Normalized responses by provider id (iteration order is the tiebreak)
        query: Text typed since the completion start column
        fuzzy: Use the fuzzy matcher instead of literal prefix matching
        text_after_cursor: Rest of the current line after the cursor, for overtype detection
        recency: Acceptance record used as the second sort key
        matcher: Fuzzy scoring function

    Returns:
        All matching candidates, best first. Not truncated.
    """
    candidates: List[RankedCandidate] = []
    for provider_id, response in responses.items():
        for item in response.iter_items():
            text = match_text(item)
            if not matches(text, query, fuzzy, matcher):
                continue

            word = display_word(item)
            overtype = 0
            if word and text_after_cursor[: len(word)] == word:
                overtype = len(word)
                word = ""

            candidates.append(
                RankedCandidate(
                    provider_id=provider_id,
                    item=item,
                    display_word=word,
                    is_exact_match=text == query,
                    overtype_replacement_length=overtype,
                )
            )

    # sorted() is stable: full ties keep encounter order
    return sorted(candidates, key=lambda c: _sort_key(c, recency))


def find_start_column(responses: Mapping[str, ProviderResponse], line: str, col: int) -> int:
    """
    Column where the word being completed starts.

    The first edit range reported by any provider wins, since servers may
    anchor edits before the keyword under the cursor. Otherwise the start of
    the run of word characters ending at the cursor.
    """
    for response in responses.values():
        for item in response.iter_items():
            if item.text_edit is not None:
                return item.text_edit.range.start.character

    match = _KEYWORD_TAIL.search(line[:col])
    return match.start() if match else col


__all__ = [
    "FuzzyMatcher",
    "RankedCandidate",
    "display_word",
    "find_start_column",
    "match_text",
    "matches",
    "rank",
    "subsequence_match",
]
