"""
Interactive completion playground.

A prompt_toolkit session whose completion menu is driven by the engine:
- Results are fetched in the background after a debounce
- The bottom toolbar shows documentation of the highlighted item
- Enter on a selected item accepts it (snippets expand, extra edits apply)
"""

import logging
from typing import List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.filters import completion_is_selected
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.styles import Style
from rich.console import Console

from compl.cli.completer import EngineCompleter
from compl.cli.surface import BufferSurface, PlaceholderExpander
from compl.completion.engine import CompletionEngine
from compl.completion.host import CompletionProvider
from compl.completion.ranking import RankedCandidate
from compl.config import CompletionConfig
from compl.providers.lsp import LSPCompletionProvider

logger = logging.getLogger(__name__)

STYLE = Style.from_dict({
    'prompt-symbol': '#00d7ff bold',

    # Completion menu
    'completion-menu': 'bg:#1a1a1a #ffffff',
    'completion-menu.completion': 'bg:#1a1a1a #e0e0e0',
    'completion-menu.completion.current': 'bg:#00d7ff #000000 bold',
    'completion-menu.meta': 'bg:#1a1a1a #808080',
    'completion-menu.meta.current': 'bg:#00d7ff #000000',

    # Documentation toolbar
    'bottom-toolbar': 'bg:#1a1a2e #888888',
})


class ReplSession:
    """
    One prompt_toolkit session wired to a CompletionEngine.

    Each submitted line ends the editing session (pending requests are
    cancelled) and is echoed back.
    """

    def __init__(
        self,
        providers: List[CompletionProvider],
        config: CompletionConfig,
        buffer_id: str = "repl",
        console: Optional[Console] = None,
    ):
        self.providers = providers
        self.config = config
        self.console = console or Console()
        self.documentation = ""
        self.submitted: List[str] = []

        kb = KeyBindings()

        @kb.add('enter', filter=completion_is_selected)
        def _(event):
            """Accept the selected completion and keep the prompt open."""
            self.completer.accept_selected(event.current_buffer)

        self.prompt_session = PromptSession(
            style=STYLE,
            complete_while_typing=False,
            key_bindings=kb,
            bottom_toolbar=self._toolbar,
        )
        buffer = self.prompt_session.default_buffer

        self.surface = BufferSurface(buffer, buffer_id)
        self.engine = CompletionEngine(
            self.surface,
            providers,
            config,
            expander=PlaceholderExpander(buffer),
            on_documentation=self._on_documentation,
        )
        self.completer = EngineCompleter(self.engine)
        self.prompt_session.completer = self.completer

        # Language servers see the buffer as their document
        for provider in providers:
            if isinstance(provider, LSPCompletionProvider):
                provider.open(buffer.text)
                buffer.on_text_changed += lambda b, p=provider: p.update(b.text)

        self.completer.attach(buffer)

    async def run(self):
        """Prompt until EOF or Ctrl-C."""
        while True:
            try:
                line = await self.prompt_session.prompt_async(HTML('<prompt-symbol>❯</prompt-symbol> '))
            except (EOFError, KeyboardInterrupt):
                break
            finally:
                self.engine.on_session_end()
                self.documentation = ""

            self.submitted.append(line)
            if line.strip():
                self.console.print(f"[cyan]│[/cyan] {line}")

        logger.info(f"REPL finished after {len(self.submitted)} lines")

    def _toolbar(self):
        if not self.documentation or self.engine.highlighted is None:
            return None
        return " | ".join(self.documentation.splitlines()[:2])

    def _on_documentation(self, candidate: RankedCandidate, text: str):
        self.documentation = text
        app = self.prompt_session.app
        if app.is_running:
            app.invalidate()
