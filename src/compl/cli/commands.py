"""
CLI commands for compl.

Main entry point: `compl repl` for the interactive playground,
`compl rank QUERY` and `compl snippets` for one-shot inspection.
"""

import asyncio
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple

import click
from dotenv import find_dotenv, load_dotenv

from compl.cli import ui
from compl.completion.aggregator import ProviderAggregator
from compl.completion.host import CompletionProvider
from compl.completion.protocol import Position
from compl.completion.ranking import rank
from compl.config import CompletionConfig, ConfigError
from compl.lsp.client import LSPClient
from compl.lsp.config import get_lsp_config
from compl.providers.lsp import LSPCompletionProvider
from compl.providers.snippets import build_snippet_provider, load_snippet_items

logger = logging.getLogger(__name__)

DEFAULT_LOG_FILE = os.path.join(tempfile.gettempdir(), "compl.log")


def _setup_logging(log_file: str, verbose: bool):
    # stdout belongs to the prompt, logs go to a file
    logging.basicConfig(
        filename=log_file,
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )


def _snippet_paths(config: CompletionConfig, paths: Tuple[str, ...]) -> List[str]:
    return list(paths) or config.snippet_paths


@click.group()
@click.option("--log-file", default=None, help="Log file (default: compl.log in the temp directory)")
@click.option("--verbose", "-v", is_flag=True, help="Log debug messages")
@click.pass_context
def main(ctx, log_file: Optional[str], verbose: bool):
    """
    compl - asynchronous completion aggregation

    Usage:
        compl repl --filetype python --path ./snippets
        compl rank fo --path ./snippets
        compl snippets python --path ./snippets
    """
    load_dotenv(find_dotenv(usecwd=True))

    try:
        config = CompletionConfig.from_env(dotenv=False)
    except ConfigError as e:
        ui.print_error(f"Invalid configuration: {e}")
        sys.exit(2)

    log_file = log_file or config.log_file or DEFAULT_LOG_FILE
    _setup_logging(log_file, verbose)
    config.log_file = log_file
    ctx.obj = config


@main.command()
@click.argument("filetype", required=False)
@click.option("--path", "-p", "paths", multiple=True, help="Snippet package directory (repeatable)")
@click.pass_obj
def snippets(config: CompletionConfig, filetype: Optional[str], paths: Tuple[str, ...]):
    """List the snippets available for a filetype"""
    items = asyncio.run(load_snippet_items(_snippet_paths(config, paths), filetype))
    ui.show_snippets(items, filetype)


@main.command("rank")
@click.argument("query")
@click.option("--filetype", "-f", default=None, help="Only snippets for this filetype")
@click.option("--path", "-p", "paths", multiple=True, help="Snippet package directory (repeatable)")
@click.option("--after", default="", help="Text after the cursor (overtype detection)")
@click.option("--fuzzy/--no-fuzzy", default=None, help="Override COMPL_FUZZY")
@click.option("--doc", is_flag=True, help="Show documentation of the top candidate")
@click.pass_obj
def rank_command(
    config: CompletionConfig,
    query: str,
    filetype: Optional[str],
    paths: Tuple[str, ...],
    after: str,
    fuzzy: Optional[bool],
    doc: bool,
):
    """Rank snippet candidates for QUERY"""
    fuzzy = config.fuzzy if fuzzy is None else fuzzy

    async def _fetch():
        provider = await build_snippet_provider(_snippet_paths(config, paths), filetype)
        aggregator = ProviderAggregator([provider])
        return await aggregator.fetch(Position(0, len(query)), "cli")

    responses = asyncio.run(_fetch())
    candidates = rank(responses, query, fuzzy=fuzzy, text_after_cursor=after)
    ui.show_candidates(candidates, query)

    if doc and candidates:
        ui.show_documentation(candidates[0].item)


@main.command()
def servers():
    """Check which language servers are installed"""
    lsp_config = get_lsp_config()
    available = lsp_config.list_available_servers()
    hints = {filetype: lsp_config.get_install_hint(filetype) for filetype in available}
    ui.show_servers(available, hints)


@main.command()
@click.option("--filetype", "-f", default=None, help="Filetype for snippets and language server")
@click.option("--file", "file_path", default=None, type=click.Path(), help="Document path used for the language server")
@click.option("--path", "-p", "paths", multiple=True, help="Snippet package directory (repeatable)")
@click.option("--lsp/--no-lsp", default=True, help="Start a language server for the filetype")
@click.pass_obj
def repl(
    config: CompletionConfig,
    filetype: Optional[str],
    file_path: Optional[str],
    paths: Tuple[str, ...],
    lsp: bool,
):
    """Interactive completion playground"""
    if filetype is None and file_path:
        filetype = get_lsp_config().filetype_for_file(file_path)

    try:
        asyncio.run(_run_repl(config, filetype, file_path, _snippet_paths(config, paths), lsp))
    except KeyboardInterrupt:
        sys.exit(130)


async def _run_repl(
    config: CompletionConfig,
    filetype: Optional[str],
    file_path: Optional[str],
    paths: List[str],
    use_lsp: bool,
):
    from compl.cli.interactive import ReplSession

    providers: List[CompletionProvider] = []
    client: Optional[LSPClient] = None

    if use_lsp and filetype:
        client = await _start_language_server(filetype)
        if client is not None:
            document = file_path or str(Path.cwd() / f"compl-repl{_extension(filetype)}")
            providers.append(LSPCompletionProvider(client, document))

    providers.append(await build_snippet_provider(paths, filetype))
    provider_ids = [p.provider_id for p in providers]
    logger.info(f"Starting REPL for {filetype or 'no filetype'} with providers {provider_ids}")

    session = ReplSession(providers, config, buffer_id=_buffer_id(providers))
    ui.show_welcome(filetype, provider_ids, config.log_file)

    try:
        await session.run()
    finally:
        if client is not None:
            await client.stop()


async def _start_language_server(filetype: str) -> Optional[LSPClient]:
    lsp_config = get_lsp_config()
    server = lsp_config.get_server(filetype)
    if server is None:
        ui.print_warning(
            f"No language server for {filetype}: {lsp_config.get_install_hint(filetype)}"
        )
        return None

    client = LSPClient(server, Path.cwd().as_uri())
    if not await client.start():
        ui.print_warning(f"Language server for {filetype} failed to start (see log)")
        return None
    return client


def _extension(filetype: str) -> str:
    server = get_lsp_config().get_server(filetype)
    return server.extensions[0] if server and server.extensions else ""


def _buffer_id(providers: List[CompletionProvider]) -> str:
    # LSP providers only answer for the document they opened
    for provider in providers:
        if isinstance(provider, LSPCompletionProvider):
            return provider.file_path
    return "repl"


@main.command()
def version():
    """Show version information"""
    from compl import __version__

    ui.console.print(f"\n[bold]compl[/bold] v{__version__}\n")


if __name__ == "__main__":
    main()
