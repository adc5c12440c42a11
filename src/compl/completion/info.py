"""
Documentation lookup for the highlighted candidate.
"""

import asyncio
import logging
from typing import Callable, Optional

from compl.completion.context import PendingRequestSet, RequestKind
from compl.completion.errors import ProviderError
from compl.completion.host import CompletionProvider
from compl.completion.protocol import CompletionItem, MarkupContent
from compl.completion.ranking import RankedCandidate

logger = logging.getLogger(__name__)

DocumentationListener = Callable[[RankedCandidate, str], None]


def format_documentation(item: CompletionItem) -> str:
    """
    Join an item's detail and documentation into one text.

    Returns:
        Empty string when the item carries neither
    """
    detail = item.detail or ""
    if isinstance(item.documentation, MarkupContent):
        documentation = item.documentation.value or ""
    else:
        documentation = item.documentation or ""

    if detail and documentation:
        return f"{detail}\n{documentation}"
    return detail or documentation


class InfoResolver:
    """
    Fetches documentation for the highlighted candidate.

    Only documentation requests are cancelled when the highlight moves; the
    completion fetch and acceptance resolves share the registry but are left
    alone.
    """

    def __init__(
        self,
        pending: PendingRequestSet,
        provider_lookup: Callable[[str], CompletionProvider],
        listener: Optional[DocumentationListener] = None,
    ):
        self.pending = pending
        self.provider_lookup = provider_lookup
        self.listener = listener
        self._sequence = 0

    def on_highlight(self, candidate: Optional[RankedCandidate]) -> Optional[asyncio.Task]:
        """
        Start documentation lookup for a newly highlighted candidate.

        Returns:
            The lookup task, or None when there is nothing to look up
        """
        self.cancel()
        if candidate is None:
            return None

        self._sequence += 1
        return self.pending.spawn(
            RequestKind.DOCUMENTATION,
            self._lookup(candidate, self._sequence, self.pending.generation),
        )

    def cancel(self) -> None:
        self.pending.cancel([RequestKind.DOCUMENTATION])

    async def _lookup(self, candidate: RankedCandidate, sequence: int, generation: int) -> Optional[str]:
        item = candidate.item
        if item.documentation is None:
            resolved = await self._resolve(candidate)
            if resolved is None or resolved.documentation is None:
                return None
            item = resolved

        if sequence != self._sequence or not self.pending.is_current(generation):
            logger.debug(f"Dropping stale documentation for {candidate.label!r}")
            return None

        text = format_documentation(item)
        if not text:
            return None
        if self.listener is not None:
            self.listener(candidate, text)
        return text

    async def _resolve(self, candidate: RankedCandidate) -> Optional[CompletionItem]:
        try:
            provider = self.provider_lookup(candidate.provider_id)
        except KeyError:
            logger.debug(f"Provider {candidate.provider_id} is gone, no documentation")
            return None

        try:
            return await provider.resolve_item(candidate.item)
        except ProviderError as e:
            logger.debug(f"Documentation resolve failed for {candidate.label!r}: {e}")
        except Exception as e:
            logger.error(f"Documentation resolve raised for {candidate.label!r}: {e}", exc_info=True)
        return None
