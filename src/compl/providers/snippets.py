"""
Snippet packages - builds static providers from VS Code style snippet packages.

A package is a directory with a package.json manifest:

    {"contributes": {"snippets": [
        {"language": "python", "path": "./snippets/python.json"}
    ]}}

and snippet files mapping names to {"prefix", "body", "description"}.
Files are read in a worker thread; files that fail to parse are logged and
contribute no items.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional

from compl.completion.errors import DecodeError
from compl.completion.protocol import (
    CompletionItem,
    CompletionItemKind,
    InsertTextFormat,
    MarkupContent,
)
from compl.providers.static import StaticProvider

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"
GLOBAL_LANGUAGES = {"all", "*"}


@dataclass
class SnippetSource:
    """One contributes.snippets entry of a manifest."""

    languages: List[str]
    path: Path

    def applies_to(self, filetype: Optional[str]) -> bool:
        if filetype is None:
            return True
        return filetype in self.languages or bool(GLOBAL_LANGUAGES & set(self.languages))


async def read_json(path: Path) -> Any:
    """
    Read and decode a JSON file off the event loop.

    Raises:
        DecodeError: If the file cannot be read or is not valid JSON
    """
    try:
        text = await asyncio.to_thread(path.read_text, encoding="utf-8")
    except OSError as e:
        raise DecodeError(f"Could not read {path}: {e}", path=str(path))
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Could not decode json file {path}: {e}", path=str(path))


def parse_manifest(data: Any, package_dir: Path) -> List[SnippetSource]:
    """
    Extract snippet sources from a decoded package.json.

    Raises:
        DecodeError: If the manifest has no usable contributes.snippets list
    """
    if not isinstance(data, dict):
        raise DecodeError("Manifest is not a JSON object", path=str(package_dir))

    contributes = data.get("contributes")
    entries = contributes.get("snippets") if isinstance(contributes, dict) else None
    if not isinstance(entries, list):
        raise DecodeError("Manifest has no contributes.snippets list", path=str(package_dir))

    sources = []
    for entry in entries:
        if not isinstance(entry, dict) or "path" not in entry:
            logger.warning(f"Skipping malformed snippet entry in {package_dir}: {entry!r}")
            continue
        language = entry.get("language", [])
        languages = [language] if isinstance(language, str) else list(language)
        sources.append(SnippetSource(languages=languages, path=(package_dir / entry["path"]).resolve()))
    return sources


def _join(value: Any) -> str:
    if isinstance(value, list):
        return "\n".join(str(part) for part in value)
    return str(value)


def parse_snippets(data: Any, filetype: Optional[str] = None) -> List[CompletionItem]:
    """
    Turn a decoded snippet file into completion items, one per prefix.

    Raises:
        DecodeError: If the file is not a JSON object
    """
    if not isinstance(data, dict):
        raise DecodeError("Snippet file is not a JSON object")

    items = []
    fence = filetype or ""
    for name, snippet in data.items():
        if not isinstance(snippet, dict) or "prefix" not in snippet or "body" not in snippet:
            logger.debug(f"Skipping malformed snippet {name!r}")
            continue

        prefixes = snippet["prefix"]
        if isinstance(prefixes, str):
            prefixes = [prefixes]
        body = _join(snippet["body"])
        description = snippet.get("description")

        for prefix in prefixes:
            items.append(
                CompletionItem(
                    label=str(prefix),
                    kind=CompletionItemKind.Snippet,
                    detail=_join(description) if description else name,
                    documentation=MarkupContent(kind="markdown", value=f"```{fence}\n{body}\n```"),
                    insert_text=body,
                    insert_text_format=InsertTextFormat.Snippet,
                )
            )
    return items


def find_packages(paths: Iterable[str]) -> List[Path]:
    """Package directories under the configured paths (a path or its direct children)."""
    packages = []
    for raw in paths:
        root = Path(raw).expanduser()
        if (root / MANIFEST_NAME).is_file():
            packages.append(root)
        elif root.is_dir():
            packages.extend(
                sorted(child for child in root.iterdir() if (child / MANIFEST_NAME).is_file())
            )
        else:
            logger.debug(f"Snippet path {root} does not exist")
    return packages


async def _load_source(source: SnippetSource, filetype: Optional[str]) -> List[CompletionItem]:
    try:
        return parse_snippets(await read_json(source.path), filetype)
    except DecodeError as e:
        logger.error(f"Skipping snippets: {e}")
        return []


async def load_package(package_dir: Path, filetype: Optional[str] = None) -> List[CompletionItem]:
    """Load all snippets of one package that apply to `filetype`."""
    try:
        sources = parse_manifest(await read_json(package_dir / MANIFEST_NAME), package_dir)
    except DecodeError as e:
        logger.error(f"Skipping snippets: {e}")
        return []

    results = await asyncio.gather(
        *(_load_source(source, filetype) for source in sources if source.applies_to(filetype))
    )
    return [item for items in results for item in items]


async def load_snippet_items(paths: Iterable[str], filetype: Optional[str] = None) -> List[CompletionItem]:
    """Load snippet items from every package found under `paths`."""
    packages = await asyncio.to_thread(find_packages, list(paths))
    results = await asyncio.gather(*(load_package(package, filetype) for package in packages))
    items = [item for package_items in results for item in package_items]
    logger.info(f"Loaded {len(items)} snippets from {len(packages)} packages for {filetype or 'all filetypes'}")
    return items


async def build_snippet_provider(
    paths: Iterable[str],
    filetype: Optional[str] = None,
    provider_id: str = "snippets",
) -> StaticProvider:
    """Build a static provider holding every snippet that applies to `filetype`."""
    return StaticProvider(provider_id, await load_snippet_items(paths, filetype))


__all__ = [
    "SnippetSource",
    "build_snippet_provider",
    "find_packages",
    "load_package",
    "load_snippet_items",
    "parse_manifest",
    "parse_snippets",
    "read_json",
]
