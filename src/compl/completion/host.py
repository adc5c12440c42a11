"""
Host capability interfaces.

The engine never touches an editor directly. Hosts implement:
- TextSurface: the buffer and cursor
- SnippetExpander: structured snippet insertion
and register any number of CompletionProvider instances.
"""

from abc import ABC, abstractmethod

from compl.completion.protocol import CompletionItem, Position, ProviderResponse, Range

NORMAL_BUFFER = "normal"


class TextSurface(ABC):
    """
    Abstract text buffer with a single cursor.

    Positions are 0-indexed (line, character). Implementations raise
    ApplyEditFailure when a cursor move or edit cannot be applied.
    """

    @abstractmethod
    def buffer_id(self) -> str:
        """Identifier passed to providers when asking about completion support"""
        pass

    @abstractmethod
    def current_line(self) -> str:
        """Text of the line the cursor is on"""
        pass

    @abstractmethod
    def cursor_position(self) -> Position:
        """Current cursor position"""
        pass

    @abstractmethod
    def set_cursor_position(self, position: Position) -> None:
        """Move the cursor"""
        pass

    @abstractmethod
    def replace_range(self, range: Range, text: str) -> None:
        """Replace the text inside `range` with `text`"""
        pass

    @abstractmethod
    def buffer_kind(self) -> str:
        """'normal' for regular editable buffers, anything else vetoes completion"""
        pass


class CompletionProvider(ABC):
    """
    Abstract base class for completion sources.

    request_completion and resolve_item are coroutines; the engine runs them
    as tasks so that cancelling the task is the cancel handle.
    """

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Stable identifier, unique among registered providers"""
        pass

    @abstractmethod
    def supports_completion(self, buffer_id: str) -> bool:
        """Whether this provider can answer requests for the buffer"""
        pass

    @abstractmethod
    async def request_completion(self, position: Position) -> ProviderResponse:
        """
        Ask for completion items at a position.

        Returns:
            ProviderResponse (may carry an error instead of items)

        Raises:
            ProviderError: If the request fails
        """
        pass

    @abstractmethod
    async def resolve_item(self, item: CompletionItem) -> CompletionItem:
        """Return the fully detailed version of an item"""
        pass


class SnippetExpander(ABC):
    """Expands a snippet body at the cursor."""

    @abstractmethod
    def expand(self, body: str) -> None:
        pass
