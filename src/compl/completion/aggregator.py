"""
Provider aggregation: fan a completion request out to every active provider
and normalize each reply against its list-level item defaults.
"""

import asyncio
import logging
from typing import Dict, List

from compl.completion.errors import ProviderError
from compl.completion.host import CompletionProvider
from compl.completion.protocol import (
    CompletionItem,
    InsertReplaceEdit,
    InsertReplaceRange,
    ItemDefaults,
    Position,
    ProviderResponse,
    Range,
    TextEdit,
    first_present,
)

logger = logging.getLogger(__name__)


def apply_item_defaults(item: CompletionItem, defaults: ItemDefaults) -> None:
    """
    Backfill list-level defaults into an item, in place.

    Item values always win over defaults. When the defaults carry an edit
    range and the item has no edit, one is synthesized from the item's own
    text.
    """
    if item.insert_text_format is None:
        item.insert_text_format = defaults.insert_text_format
    if item.insert_text_mode is None:
        item.insert_text_mode = defaults.insert_text_mode
    if item.data is None:
        item.data = defaults.data

    if defaults.edit_range is None or item.text_edit is not None:
        return

    new_text = first_present(item.text_edit_text, item.insert_text, item.filter_text, item.label) or ""
    if isinstance(defaults.edit_range, Range):
        item.text_edit = TextEdit(range=defaults.edit_range, new_text=new_text)
    elif isinstance(defaults.edit_range, InsertReplaceRange):
        item.text_edit = InsertReplaceEdit(
            insert=defaults.edit_range.insert,
            replace=defaults.edit_range.replace,
            new_text=new_text,
        )


def normalize_response(response: ProviderResponse) -> ProviderResponse:
    """Apply item defaults to every item of a successful response."""
    defaults = response.item_defaults
    if response.ok and defaults is not None and not defaults.is_empty():
        for item in response.items:
            apply_item_defaults(item, defaults)
    return response


class ProviderAggregator:
    """
    Queries all active providers concurrently and caches the normalized replies.

    The cache is what the ranker filters on every keystroke; it is replaced
    wholesale by commit() and never merged.
    """

    def __init__(self, providers: List[CompletionProvider]):
        """
        Initialize aggregator.

        Args:
            providers: Providers in registration order (also the ranking tiebreak order)
        """
        self.providers = list(providers)
        self.responses: Dict[str, ProviderResponse] = {}

    def active_providers(self, buffer_id: str) -> List[CompletionProvider]:
        return [p for p in self.providers if p.supports_completion(buffer_id)]

    def get_provider(self, provider_id: str) -> CompletionProvider:
        for provider in self.providers:
            if provider.provider_id == provider_id:
                return provider
        raise KeyError(provider_id)

    async def fetch(self, position: Position, buffer_id: str) -> Dict[str, ProviderResponse]:
        """
        Request completions from every active provider.

        Returns once every provider has replied or failed. Cancellation
        propagates to all outstanding provider calls.

        Args:
            position: Cursor position
            buffer_id: Buffer the request is for

        Returns:
            Mapping of provider id to normalized response, in registration order
        """
        providers = self.active_providers(buffer_id)
        results = await asyncio.gather(
            *(self._fetch_one(provider, position) for provider in providers)
        )
        return {provider.provider_id: response for provider, response in zip(providers, results)}

    async def _fetch_one(self, provider: CompletionProvider, position: Position) -> ProviderResponse:
        try:
            response = await provider.request_completion(position)
        except ProviderError as e:
            logger.warning(f"Provider {provider.provider_id} failed: {e}")
            return ProviderResponse.failure(e)
        except Exception as e:
            logger.error(f"Provider {provider.provider_id} raised: {e}", exc_info=True)
            return ProviderResponse.failure(ProviderError(str(e), provider_id=provider.provider_id))

        if response.error is not None:
            logger.warning(f"Provider {provider.provider_id} returned error: {response.error}")
            return response

        # Normalized as soon as it arrives, independent of other providers
        return normalize_response(response)

    def commit(self, responses: Dict[str, ProviderResponse]) -> None:
        self.responses = responses

    def clear(self) -> None:
        self.responses = {}
