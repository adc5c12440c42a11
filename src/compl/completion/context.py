"""
Request context tracking and the registry of in-flight requests.

Every async operation (completion fetch, item resolve, documentation) is
registered in a PendingRequestSet together with the generation it belongs
to. Starting a new completion cycle or leaving the session cancels them all
and advances the generation, so late results can be recognised as stale.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple, TypeVar

from compl.completion.host import NORMAL_BUFFER, CompletionProvider, TextSurface
from compl.completion.protocol import Position

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestKind(Enum):
    COMPLETION = "completion"
    RESOLVE = "resolve"
    DOCUMENTATION = "documentation"


class PendingRequestSet:
    """Ordered cancellation handles for all outstanding async operations."""

    def __init__(self):
        self._handles: List[Tuple[RequestKind, Callable[[], object]]] = []
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def __len__(self) -> int:
        return len(self._handles)

    def add(self, kind: RequestKind, cancel: Callable[[], object]) -> None:
        """Register a cancel handle."""
        self._handles.append((kind, cancel))

    def spawn(self, kind: RequestKind, coro: Awaitable[T]) -> "asyncio.Task[T]":
        """
        Run a coroutine as a task and register its cancel handle.

        The handle is dropped again once the task finishes.
        """
        task = asyncio.ensure_future(coro)
        entry = (kind, task.cancel)
        self._handles.append(entry)

        def _discard(_task: asyncio.Task) -> None:
            if entry in self._handles:
                self._handles.remove(entry)

        task.add_done_callback(_discard)
        return task

    def cancel(self, kinds: Iterable[RequestKind]) -> int:
        """Cancel handles of the given kinds only; the generation is kept."""
        wanted = set(kinds)
        cancelled = [h for h in self._handles if h[0] in wanted]
        self._handles = [h for h in self._handles if h[0] not in wanted]
        for _, cancel in cancelled:
            cancel()
        return len(cancelled)

    def cancel_all(self) -> int:
        """Invoke every handle, clear the set and start a new generation."""
        handles, self._handles = self._handles, []
        for _, cancel in handles:
            cancel()
        self._generation += 1
        if handles:
            logger.debug(f"Cancelled {len(handles)} pending requests, generation {self._generation}")
        return len(handles)


class Veto(Enum):
    UNCHANGED = "position unchanged"
    NO_PROVIDER = "no provider supports completion"
    NOT_NORMAL_BUFFER = "not a normal buffer"
    ITEM_SELECTED = "a candidate is selected"
    LINE_START = "cursor at column 0"
    AFTER_WHITESPACE = "character before cursor is whitespace"


@dataclass
class Evaluation:
    should_proceed: bool
    reason: Optional[Veto] = None


class RequestContextTracker:
    """
    Decides whether a trigger at the current cursor should fetch completions.

    Remembers the last evaluated position so repeated idle triggers at the
    same spot do not re-fire.
    """

    def __init__(self, pending: Optional[PendingRequestSet] = None):
        self.pending = pending if pending is not None else PendingRequestSet()
        self.last_position: Optional[Position] = None

    def evaluate(
        self,
        position: Position,
        surface: TextSurface,
        providers: List[CompletionProvider],
        has_selection: bool = False,
    ) -> Evaluation:
        """
        Evaluate a trigger.

        Args:
            position: Cursor position of the trigger
            surface: Text surface the trigger came from
            providers: Registered providers
            has_selection: Whether the host currently highlights a candidate

        Returns:
            Evaluation with should_proceed and the veto reason if any
        """
        # Stale results must never apply to a newer cursor state
        self.pending.cancel_all()

        unchanged = self.last_position == position
        self.last_position = Position(position.line, position.character)

        veto = self._veto(position, unchanged, surface, providers, has_selection)
        if veto is not None:
            logger.debug(f"Completion vetoed at {position.line}:{position.character}: {veto.value}")
            return Evaluation(should_proceed=False, reason=veto)
        return Evaluation(should_proceed=True)

    def reset(self) -> None:
        """Forget the last position (session ended)."""
        self.last_position = None

    @staticmethod
    def _veto(
        position: Position,
        unchanged: bool,
        surface: TextSurface,
        providers: List[CompletionProvider],
        has_selection: bool,
    ) -> Optional[Veto]:
        if unchanged:
            return Veto.UNCHANGED

        buffer_id = surface.buffer_id()
        if not any(p.supports_completion(buffer_id) for p in providers):
            return Veto.NO_PROVIDER

        if surface.buffer_kind() != NORMAL_BUFFER:
            return Veto.NOT_NORMAL_BUFFER

        if has_selection:
            return Veto.ITEM_SELECTED

        col = position.character
        if col == 0:
            return Veto.LINE_START

        line = surface.current_line()
        if col <= len(line) and line[col - 1].isspace():
            return Veto.AFTER_WHITESPACE

        return None
