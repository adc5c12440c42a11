"""
Static provider - answers every request with a fixed item list.
"""

import copy
from typing import Iterable, List, Optional, Set

from compl.completion.host import CompletionProvider
from compl.completion.protocol import CompletionItem, Position, ProviderResponse


class StaticProvider(CompletionProvider):
    """
    Provider backed by a pre-built list of items (e.g. parsed snippet files).

    Each request gets fresh copies so normalization or acceptance never
    mutates the backing list.
    """

    def __init__(
        self,
        provider_id: str,
        items: Iterable[CompletionItem],
        buffer_ids: Optional[Iterable[str]] = None,
    ):
        """
        Initialize static provider.

        Args:
            provider_id: Unique provider identifier
            items: Items returned for every request
            buffer_ids: Restrict support to these buffers (all buffers when None)
        """
        self._provider_id = provider_id
        self.items: List[CompletionItem] = list(items)
        self.buffer_ids: Optional[Set[str]] = set(buffer_ids) if buffer_ids is not None else None

    @property
    def provider_id(self) -> str:
        return self._provider_id

    def supports_completion(self, buffer_id: str) -> bool:
        if not self.items:
            return False
        return self.buffer_ids is None or buffer_id in self.buffer_ids

    async def request_completion(self, position: Position) -> ProviderResponse:
        return ProviderResponse(items=[copy.deepcopy(item) for item in self.items])

    async def resolve_item(self, item: CompletionItem) -> CompletionItem:
        # Items are complete already
        return item

    def __repr__(self) -> str:
        return f"StaticProvider({self._provider_id!r}, {len(self.items)} items)"
