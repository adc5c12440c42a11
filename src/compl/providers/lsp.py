"""
LSP provider - completion items from a language server.
"""

import logging
from pathlib import Path
from typing import Optional

from compl.completion.errors import ProviderError
from compl.completion.host import CompletionProvider
from compl.completion.protocol import CompletionItem, Position, ProviderResponse
from compl.lsp.client import LSPClient, LSPResponseError

logger = logging.getLogger(__name__)


class LSPCompletionProvider(CompletionProvider):
    """
    Completion provider bound to one document of one language server.

    The provider owns the document synchronization: `open` sends didOpen,
    `update` sends a full-text didChange with a bumped version, and `close`
    sends didClose.
    """

    def __init__(self, client: LSPClient, file_path: str, provider_id: Optional[str] = None):
        self.client = client
        self.file_path = str(Path(file_path).resolve())
        self._provider_id = provider_id or f"lsp:{client.config.language_id}"
        self.version = 0
        self.content: Optional[str] = None

    @property
    def provider_id(self) -> str:
        return self._provider_id

    @property
    def is_open(self) -> bool:
        return self.content is not None

    def open(self, content: str):
        """Open the document on the server."""
        if self.is_open:
            self.update(content)
            return
        self.version = 1
        self.content = content
        self.client.notify_document_open(self.file_path, content, self.version)
        logger.debug(f"Opened document: {self.file_path}")

    def update(self, content: str):
        """Send the new document text if it changed."""
        if not self.is_open:
            self.open(content)
            return
        if content == self.content:
            return
        self.version += 1
        self.content = content
        self.client.notify_document_change(self.file_path, content, self.version)

    def close(self):
        if not self.is_open:
            return
        self.client.notify_document_close(self.file_path)
        self.content = None
        logger.debug(f"Closed document: {self.file_path}")

    def supports_completion(self, buffer_id: str) -> bool:
        if not (self.client.is_running and self.client.supports_completion and self.is_open):
            return False
        return str(Path(buffer_id).resolve()) == self.file_path

    async def request_completion(self, position: Position) -> ProviderResponse:
        try:
            result = await self.client.completion(self.file_path, position.line, position.character)
        except LSPResponseError as e:
            raise ProviderError(e.message, provider_id=self.provider_id, code=e.code)
        except ConnectionError as e:
            raise ProviderError(str(e), provider_id=self.provider_id)
        return ProviderResponse.from_result(result)

    async def resolve_item(self, item: CompletionItem) -> CompletionItem:
        if not self.client.supports_resolve:
            return item
        try:
            resolved = await self.client.resolve_completion_item(item.to_dict())
        except LSPResponseError as e:
            raise ProviderError(e.message, provider_id=self.provider_id, code=e.code)
        except ConnectionError as e:
            raise ProviderError(str(e), provider_id=self.provider_id)
        if not isinstance(resolved, dict):
            return item
        return CompletionItem.from_dict(resolved)

    def __repr__(self) -> str:
        return f"LSPCompletionProvider({self._provider_id!r}, {self.file_path!r})"
