"""Shared pytest fixtures for compl tests."""

import json
import sys
from pathlib import Path

import pytest

# Add tests and src to path for imports
sys.path.insert(0, str(Path(__file__).parent))
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fakes import FakeSurface


@pytest.fixture
def surface() -> FakeSurface:
    """Surface with the cursor after 'fo' on a single line."""
    return FakeSurface.at("fo|")


@pytest.fixture
def snippet_package(tmp_path: Path) -> Path:
    """A VS Code style snippet package with python and global snippets."""
    package = tmp_path / "friendly-snippets"
    (package / "snippets").mkdir(parents=True)

    (package / "package.json").write_text(json.dumps({
        "name": "friendly-snippets",
        "contributes": {
            "snippets": [
                {"language": ["python"], "path": "./snippets/python.json"},
                {"language": "all", "path": "./snippets/global.json"},
                {"language": "lua", "path": "./snippets/lua.json"},
            ]
        },
    }))
    (package / "snippets" / "python.json").write_text(json.dumps({
        "def": {
            "prefix": "def",
            "body": ["def ${1:name}(${2}):", "    ${0:pass}"],
            "description": "Function definition",
        },
        "for loop": {
            "prefix": ["for", "fori"],
            "body": "for ${1:item} in ${2:items}:\n    $0",
        },
    }))
    (package / "snippets" / "global.json").write_text(json.dumps({
        "todo": {"prefix": "todo", "body": "TODO: $1", "description": "Todo marker"},
    }))
    (package / "snippets" / "lua.json").write_text(json.dumps({
        "fn": {"prefix": "fn", "body": "function $1()\n  $0\nend"},
    }))
    return package
