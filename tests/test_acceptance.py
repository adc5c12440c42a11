"""
Tests for the acceptance pipeline.
"""

import asyncio

import pytest

from fakes import FakeExpander, FakeProvider, FakeSurface

from compl.completion.acceptance import AcceptancePipeline, apply_text_edits
from compl.completion.context import PendingRequestSet
from compl.completion.errors import ProviderError
from compl.completion.protocol import CompletionItem, CompletionItemKind, Position, Range, TextEdit
from compl.completion.ranking import RankedCandidate
from compl.completion.recency import AcceptanceRecord


def _edit(line: int, start: int, end: int, new_text: str) -> TextEdit:
    return TextEdit(range=Range(Position(line, start), Position(line, end)), new_text=new_text)


def _candidate(item: CompletionItem, provider_id: str = "p", word=None, overtype: int = 0) -> RankedCandidate:
    return RankedCandidate(
        provider_id=provider_id,
        item=item,
        display_word=item.label if word is None else word,
        is_exact_match=False,
        overtype_replacement_length=overtype,
    )


class TestApplyTextEdits:
    def test_edits_apply_last_range_first(self):
        surface = FakeSurface.at("abc def|")
        edits = [_edit(0, 0, 3, "ABC"), _edit(0, 4, 7, "DEFG")]

        assert apply_text_edits(surface, edits) == 2
        assert surface.text == "ABC DEFG"

    def test_failed_edit_is_skipped(self):
        surface = FakeSurface.at("abc|")
        edits = [_edit(5, 0, 0, "nope"), _edit(0, 0, 0, "x")]

        assert apply_text_edits(surface, edits) == 1
        assert surface.text == "xabc"


class TestAcceptancePipeline:
    def setup_method(self):
        self.recency = AcceptanceRecord(clock=lambda: 10.0)
        self.pending = PendingRequestSet()
        self.providers = {}

    def _pipeline(self, surface, expander=None):
        return AcceptancePipeline(
            surface, expander, self.recency, self.pending, lambda pid: self.providers[pid]
        )

    def test_records_recency(self):
        surface = FakeSurface.at("foo|")
        item = CompletionItem(label="foo", additional_text_edits=[_edit(0, 0, 0, "")])

        self._pipeline(surface).accept(_candidate(item), "foo")

        assert self.recency.last_accepted("foo") == 10.0

    def test_overtype_moves_cursor_past_existing_word(self):
        surface = FakeSurface.at("foo(|bar)")
        item = CompletionItem(label="bar", additional_text_edits=[_edit(0, 0, 0, "")])

        self._pipeline(surface).accept(_candidate(item, word="", overtype=3), "")

        assert surface.marked == "foo(bar|)"

    def test_overtype_out_of_range_is_ignored(self):
        surface = FakeSurface.at("ba|")
        item = CompletionItem(label="bar", additional_text_edits=[_edit(0, 0, 0, "")])

        self._pipeline(surface).accept(_candidate(item, word="", overtype=5), "")

        assert surface.marked == "ba|"

    def test_snippet_replaces_trigger_with_body(self):
        surface = FakeSurface.at("x = def|")
        expander = FakeExpander(surface)
        item = CompletionItem(
            label="def",
            kind=CompletionItemKind.Snippet,
            insert_text="def ${1:name}():",
            additional_text_edits=[_edit(0, 0, 0, "")],
        )

        self._pipeline(surface, expander).accept(_candidate(item), "def")

        assert expander.bodies == ["def ${1:name}():"]
        assert surface.text == "x = def ${1:name}():"

    def test_snippet_prefers_edit_text(self):
        surface = FakeSurface.at("fn|")
        expander = FakeExpander()
        item = CompletionItem(
            label="fn",
            kind=CompletionItemKind.Snippet,
            insert_text="ignored",
            text_edit=_edit(0, 0, 2, "function $1() end"),
            additional_text_edits=[_edit(0, 0, 0, "")],
        )

        self._pipeline(surface, expander).accept(_candidate(item), "fn")

        assert expander.bodies == ["function $1() end"]
        assert surface.marked == "|"

    def test_snippet_without_expander_still_removes_trigger(self):
        surface = FakeSurface.at("def|")
        item = CompletionItem(
            label="def", kind=CompletionItemKind.Snippet, insert_text="def",
            additional_text_edits=[_edit(0, 0, 0, "")],
        )

        self._pipeline(surface, None).accept(_candidate(item), "def")

        assert surface.marked == "|"

    def test_additional_edits_apply_immediately(self):
        surface = FakeSurface.at("\nos|")
        item = CompletionItem(label="os", additional_text_edits=[_edit(0, 0, 0, "import os")])

        task = self._pipeline(surface).accept(_candidate(item), "os")

        assert task is None
        assert surface.marked == "import os\nos|"

    @pytest.mark.asyncio
    async def test_lazy_resolve_applies_edits(self):
        surface = FakeSurface.at("\npath|")
        resolved = CompletionItem(label="path", additional_text_edits=[_edit(0, 0, 0, "from os import path")])
        self.providers["p"] = FakeProvider("p", resolved={"path": resolved})

        task = self._pipeline(surface).accept(_candidate(CompletionItem(label="path")), "path")
        edits = await task

        assert len(edits) == 1
        assert surface.text == "from os import path\npath"
        assert self.providers["p"].resolve_calls == ["path"]

    @pytest.mark.asyncio
    async def test_lazy_resolve_dropped_when_cancelled(self):
        surface = FakeSurface.at("\npath|")
        resolved = CompletionItem(label="path", additional_text_edits=[_edit(0, 0, 0, "import x")])
        self.providers["p"] = FakeProvider("p", resolved={"path": resolved}, resolve_delay=10)

        task = self._pipeline(surface).accept(_candidate(CompletionItem(label="path")), "path")
        await asyncio.sleep(0.01)
        self.pending.cancel_all()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert surface.text == "\npath"

    @pytest.mark.asyncio
    async def test_lazy_resolve_dropped_when_generation_is_stale(self):
        surface = FakeSurface.at("\npath|")
        resolved = CompletionItem(label="path", additional_text_edits=[_edit(0, 0, 0, "import x")])
        self.providers["p"] = FakeProvider("p", resolved={"path": resolved})

        task = self._pipeline(surface).accept(_candidate(CompletionItem(label="path")), "path")
        # New generation without cancelling the task itself
        self.pending._generation += 1

        assert await task == []
        assert surface.text == "\npath"

    @pytest.mark.asyncio
    async def test_lazy_resolve_error_is_swallowed(self):
        surface = FakeSurface.at("x|")
        self.providers["p"] = FakeProvider("p", resolve_error=ProviderError("no"))

        task = self._pipeline(surface).accept(_candidate(CompletionItem(label="x")), "x")

        assert await task == []
        assert surface.text == "x"

    @pytest.mark.asyncio
    async def test_lazy_resolve_with_unknown_provider(self):
        surface = FakeSurface.at("x|")

        task = self._pipeline(surface).accept(_candidate(CompletionItem(label="x"), provider_id="gone"), "x")

        assert await task == []
