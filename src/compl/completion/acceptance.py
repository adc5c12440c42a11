"""
Side effects run once per accepted candidate: recency bookkeeping, cursor
fixup for overtyped words, snippet expansion and supplementary text edits.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from compl.completion.context import PendingRequestSet, RequestKind
from compl.completion.errors import ApplyEditFailure, ProviderError
from compl.completion.host import CompletionProvider, SnippetExpander, TextSurface
from compl.completion.protocol import Position, Range, TextEdit, first_present
from compl.completion.ranking import RankedCandidate
from compl.completion.recency import AcceptanceRecord

logger = logging.getLogger(__name__)


def apply_text_edits(surface: TextSurface, edits: List[TextEdit]) -> int:
    """
    Apply edits to the surface, last range first so earlier ranges stay valid.

    Returns:
        Number of edits applied; failed edits are logged and skipped
    """
    ordered = sorted(
        edits,
        key=lambda e: (e.range.start.line, e.range.start.character),
        reverse=True,
    )
    applied = 0
    for edit in ordered:
        try:
            surface.replace_range(edit.range, edit.new_text)
            applied += 1
        except ApplyEditFailure as e:
            logger.debug(f"Skipping text edit at {edit.range.to_dict()}: {e}")
    return applied


class AcceptancePipeline:
    """Runs the acceptance side effects for one candidate at a time."""

    def __init__(
        self,
        surface: TextSurface,
        expander: Optional[SnippetExpander],
        recency: AcceptanceRecord,
        pending: PendingRequestSet,
        provider_lookup: Callable[[str], CompletionProvider],
    ):
        self.surface = surface
        self.expander = expander
        self.recency = recency
        self.pending = pending
        self.provider_lookup = provider_lookup

    def accept(self, candidate: RankedCandidate, inserted_word: str) -> Optional[asyncio.Task]:
        """
        Handle an accepted candidate.

        Args:
            candidate: The candidate the host accepted
            inserted_word: Text the host actually inserted (empty for overtype)

        Returns:
            The lazy resolve task when supplementary edits must be fetched, else None
        """
        item = candidate.item
        self.recency.record(item.label)

        if inserted_word == "":
            self._skip_overtyped(candidate.overtype_replacement_length)

        if item.is_snippet_body:
            self._expand_snippet(inserted_word, first_present(item.edit_text, item.insert_text) or "")

        if item.additional_text_edits:
            apply_text_edits(self.surface, item.additional_text_edits)
            return None

        return self.pending.spawn(
            RequestKind.RESOLVE, self._resolve_edits(candidate, self.pending.generation)
        )

    def _skip_overtyped(self, length: int) -> None:
        if length == 0:
            return
        cursor = self.surface.cursor_position()
        try:
            self.surface.set_cursor_position(Position(cursor.line, cursor.character + length))
        except ApplyEditFailure as e:
            logger.debug(f"Could not move cursor past overtyped word: {e}")

    def _expand_snippet(self, inserted_word: str, body: str) -> None:
        cursor = self.surface.cursor_position()
        start = Position(cursor.line, max(0, cursor.character - len(inserted_word)))
        try:
            self.surface.replace_range(Range(start=start, end=cursor), "")
            self.surface.set_cursor_position(start)
        except ApplyEditFailure as e:
            logger.debug(f"Could not remove inserted snippet trigger: {e}")

        if self.expander is None:
            logger.warning("Snippet item accepted but no snippet expander is configured")
            return
        self.expander.expand(body)

    async def _resolve_edits(self, candidate: RankedCandidate, generation: int) -> List[TextEdit]:
        try:
            provider = self.provider_lookup(candidate.provider_id)
        except KeyError:
            logger.debug(f"Provider {candidate.provider_id} is gone, skipping resolve")
            return []

        try:
            resolved = await provider.resolve_item(candidate.item)
        except ProviderError as e:
            logger.debug(f"Resolve failed for {candidate.label!r}: {e}")
            return []
        except asyncio.CancelledError:
            logger.debug(f"Resolve for {candidate.label!r} cancelled, dropping edits")
            raise
        except Exception as e:
            logger.error(f"Resolve raised for {candidate.label!r}: {e}", exc_info=True)
            return []

        if not self.pending.is_current(generation):
            logger.debug(f"Dropping stale edits for {candidate.label!r}")
            return []

        edits = resolved.additional_text_edits
        if edits:
            apply_text_edits(self.surface, edits)
        return edits
