"""
prompt_toolkit completer driven by the completion engine.

The engine fetches in the background; when fresh results are cached the
completer re-opens the menu, and every menu refresh is a pure re-rank of the
cached responses. Menu navigation feeds the documentation lookup, and Enter
on a selected item runs the acceptance side effects.
"""

import asyncio
import logging
from typing import Iterable, Optional

from prompt_toolkit.buffer import Buffer
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from compl.completion.engine import CompletionEngine
from compl.completion.ranking import RankedCandidate

logger = logging.getLogger(__name__)


class CandidateCompletion(Completion):
    """A prompt_toolkit Completion carrying its ranked candidate."""

    def __init__(self, candidate: RankedCandidate, start_position: int):
        super().__init__(
            text=candidate.display_word,
            start_position=start_position,
            display=candidate.label,
            display_meta=candidate.kind_name,
        )
        self.candidate = candidate


class EngineCompleter(Completer):
    """
    Completer that lists the engine's ranked candidates.

    Attach it to the prompt's buffer with `attach(buffer)` so that text
    changes reach the engine.
    """

    def __init__(self, engine: CompletionEngine):
        self.engine = engine
        self.buffer: Optional[Buffer] = None
        self._accepted_text: Optional[str] = None

    def attach(self, buffer: Buffer):
        """Subscribe to buffer events and route fresh results to the menu."""
        self.buffer = buffer
        buffer.on_text_changed += self._on_text_changed
        self.engine.on_results = self._show_menu

    def get_completions(self, document: Document, complete_event) -> Iterable[Completion]:
        """
        Generate completions from the cached provider responses.

        Args:
            document: Current prompt document
            complete_event: Completion event

        Yields:
            CandidateCompletion objects in rank order
        """
        col = document.cursor_position_col
        start = min(self.engine.find_start_column(), col)
        query = document.current_line[start:col]

        for candidate in self.engine.get_candidates(query):
            yield CandidateCompletion(candidate, start_position=start - col)

    def accept_selected(self, buffer: Buffer) -> bool:
        """
        Insert the selected completion and run the acceptance side effects.

        Returns:
            True if a completion was accepted
        """
        state = buffer.complete_state
        completion = state.current_completion if state else None
        if completion is None:
            return False

        buffer.apply_completion(completion)
        if isinstance(completion, CandidateCompletion):
            self.engine.on_accept(completion.candidate, completion.text)
        self._accepted_text = buffer.text
        return True

    def _show_menu(self):
        if self.buffer is None or self.buffer.complete_state is not None:
            return
        self.buffer.start_completion(select_first=False)

    def _on_text_changed(self, buffer: Buffer):
        # Navigating the menu rewrites the text and restores complete_state
        # right after the event fires, so inspect it on the next loop turn.
        asyncio.get_running_loop().call_soon(self._after_text_changed, buffer)

    def _after_text_changed(self, buffer: Buffer):
        state = buffer.complete_state
        if state is not None:
            completion = state.current_completion
            candidate = completion.candidate if isinstance(completion, CandidateCompletion) else None
            self.engine.on_highlight_changed(candidate)
            return

        # Edits made by the acceptance itself do not start a new request
        if buffer.text == self._accepted_text:
            return
        self._accepted_text = None

        if self.engine.highlighted is not None:
            self.engine.on_highlight_changed(None)
        self.engine.on_text_changed()
