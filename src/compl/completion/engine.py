"""
Completion engine - the single object a host talks to.

Hosts forward their editor events to the lifecycle hooks and pull results
through find_start_column() / get_candidates():

    engine = CompletionEngine(surface, providers, config, expander=expander,
                              on_results=show_menu)
    buffer.on_change(engine.on_text_changed)
    ...
    start = engine.find_start_column()
    candidates = engine.get_candidates(line[start:col])
"""

import asyncio
import logging
from typing import Callable, List, Optional

from compl.completion.acceptance import AcceptancePipeline
from compl.completion.aggregator import ProviderAggregator
from compl.completion.context import PendingRequestSet, RequestContextTracker, RequestKind
from compl.completion.debounce import Debouncer
from compl.completion.host import CompletionProvider, SnippetExpander, TextSurface
from compl.completion.info import DocumentationListener, InfoResolver
from compl.completion.protocol import Position
from compl.completion.ranking import (
    FuzzyMatcher,
    RankedCandidate,
    find_start_column,
    rank,
    subsequence_match,
)
from compl.completion.recency import AcceptanceRecord
from compl.config import CompletionConfig

logger = logging.getLogger(__name__)


class CompletionEngine:
    """
    Wires debouncing, request tracking, aggregation, ranking, acceptance and
    documentation lookup together for one text surface.
    """

    def __init__(
        self,
        surface: TextSurface,
        providers: List[CompletionProvider],
        config: Optional[CompletionConfig] = None,
        expander: Optional[SnippetExpander] = None,
        recency: Optional[AcceptanceRecord] = None,
        matcher: FuzzyMatcher = subsequence_match,
        on_results: Optional[Callable[[], None]] = None,
        on_documentation: Optional[DocumentationListener] = None,
    ):
        """
        Initialize completion engine.

        Args:
            surface: Host text surface
            providers: Completion providers, in priority order
            config: Engine configuration (defaults when omitted)
            expander: Host snippet expander
            recency: Acceptance record shared across engines of one session
            matcher: Fuzzy scoring function
            on_results: Called when fresh responses are cached; the host should re-query
            on_documentation: Called with (candidate, text) when documentation is ready
        """
        self.surface = surface
        self.config = config or CompletionConfig()
        if recency is None:
            recency = AcceptanceRecord(max_entries=self.config.recency_limit)
        self.recency = recency
        self.matcher = matcher
        self.on_results = on_results

        self.pending = PendingRequestSet()
        self.tracker = RequestContextTracker(self.pending)
        self.aggregator = ProviderAggregator(providers)
        self.acceptance = AcceptancePipeline(
            surface, expander, self.recency, self.pending, self.aggregator.get_provider
        )
        self.info = InfoResolver(self.pending, self.aggregator.get_provider, on_documentation)

        self._completion_trigger = Debouncer(self.start_completion, self.config.completion_timeout)
        self._info_trigger = Debouncer(self.info.on_highlight, self.config.info_timeout)

        self.highlighted: Optional[RankedCandidate] = None
        self.in_session = False

    @property
    def providers(self) -> List[CompletionProvider]:
        return self.aggregator.providers

    # --- Host queries ---

    def find_start_column(self) -> int:
        """Column where the word under completion starts on the current line."""
        line = self.surface.current_line()
        col = self.surface.cursor_position().character
        return find_start_column(self.aggregator.responses, line, col)

    def get_candidates(self, query: str) -> List[RankedCandidate]:
        """Ranked candidates for `query` from the cached responses (no I/O)."""
        line = self.surface.current_line()
        col = self.surface.cursor_position().character
        return rank(
            self.aggregator.responses,
            query,
            fuzzy=self.config.fuzzy,
            text_after_cursor=line[col:],
            recency=self.recency,
            matcher=self.matcher,
        )

    # --- Lifecycle hooks ---

    def on_text_changed(self) -> None:
        """Text changed while editing: schedule a debounced completion request."""
        self.in_session = True
        self._completion_trigger()

    def on_highlight_changed(self, candidate: Optional[RankedCandidate]) -> None:
        """The host moved its selection (None when nothing is selected)."""
        self.highlighted = candidate
        if candidate is None:
            self._info_trigger.cancel()
            self.info.cancel()
            return
        self._info_trigger(candidate)

    def on_accept(self, candidate: RankedCandidate, inserted_word: str) -> Optional[asyncio.Task]:
        """The host inserted `inserted_word` for `candidate`."""
        self._info_trigger.cancel()
        self.info.cancel()
        self.highlighted = None
        return self.acceptance.accept(candidate, inserted_word)

    def on_session_end(self) -> None:
        """Editing session ended: drop everything in flight."""
        self.in_session = False
        self.highlighted = None
        self._completion_trigger.cancel()
        self._info_trigger.cancel()
        self.pending.cancel_all()
        self.tracker.reset()

    # --- Completion cycle ---

    def start_completion(self) -> Optional[asyncio.Task]:
        """
        Evaluate the cursor context and, if allowed, fetch completions.

        Returns:
            The fetch task, or None when the trigger was vetoed
        """
        position = self.surface.cursor_position()
        evaluation = self.tracker.evaluate(
            position,
            self.surface,
            self.providers,
            has_selection=self.highlighted is not None,
        )
        if not evaluation.should_proceed:
            return None

        generation = self.pending.generation
        return self.pending.spawn(RequestKind.COMPLETION, self._complete(position, generation))

    async def _complete(self, position: Position, generation: int) -> bool:
        responses = await self.aggregator.fetch(position, self.surface.buffer_id())

        if not self.pending.is_current(generation):
            logger.debug(f"Dropping responses of stale generation {generation}")
            return False
        if not self.in_session:
            logger.debug("Session ended while fetching, dropping responses")
            return False

        self.aggregator.commit(responses)
        logger.debug(
            f"Cached responses from {len(responses)} providers at "
            f"{position.line}:{position.character}"
        )
        if self.on_results is not None:
            self.on_results()
        return True
