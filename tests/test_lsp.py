"""
Tests for the LSP wire format, client request handling and the LSP provider.
"""

import asyncio
import json

import pytest

from compl.completion.errors import ProviderError
from compl.completion.protocol import CompletionItem, InsertReplaceRange, Position
from compl.lsp.client import LSPClient, LSPResponseError, read_message
from compl.lsp.config import LSPServerConfig
from compl.lsp.protocol import LSPErrorCodes, LSPMessage
from compl.providers.lsp import LSPCompletionProvider


PYTHON_SERVER = LSPServerConfig(language_id="python", extensions=[".py"], command=["fake-ls"])


def _body(message: bytes) -> dict:
    return LSPMessage.decode(message)


# ============================================================================
# Wire format
# ============================================================================


class TestLSPMessage:
    def test_content_length_header(self):
        message = LSPMessage.completion("file:///a.py", 3, 7, request_id=5)
        header, content = message.split(b"\r\n\r\n", 1)

        assert LSPMessage.parse_content_length(header) == len(content)

    def test_completion_request(self):
        body = _body(LSPMessage.completion("file:///a.py", 3, 7, request_id=5))

        assert body["id"] == 5
        assert body["method"] == "textDocument/completion"
        assert body["params"]["position"] == {"line": 3, "character": 7}

    def test_initialize_advertises_item_defaults(self):
        body = _body(LSPMessage.initialize("file:///proj", 1, {"setting": True}))

        completion = body["params"]["capabilities"]["textDocument"]["completion"]
        assert "editRange" in completion["completionList"]["itemDefaults"]
        assert completion["completionItem"]["snippetSupport"] is True
        assert body["params"]["initializationOptions"] == {"setting": True}

    def test_response_to_server_request(self):
        assert _body(LSPMessage.response(9)) == {"jsonrpc": "2.0", "id": 9, "result": None}

    def test_cancel_request(self):
        body = _body(LSPMessage.cancel_request(4))
        assert body["method"] == "$/cancelRequest"
        assert body["params"] == {"id": 4}
        assert "id" not in body

    def test_content_length_is_byte_length(self):
        message = LSPMessage.text_document_did_change("file:///a.py", 2, "naïve ✓")
        header, content = message.split(b"\r\n\r\n", 1)
        assert LSPMessage.parse_content_length(header) == len(content)

    def test_decode_incomplete(self):
        assert LSPMessage.decode(b"Content-Length: 10") is None


class TestReadMessage:
    @pytest.mark.asyncio
    async def test_reads_consecutive_messages(self):
        reader = asyncio.StreamReader()
        reader.feed_data(LSPMessage.response(1, {"a": 1}) + LSPMessage.response(2, [1, 2]))
        reader.feed_eof()

        first = await read_message(reader)
        second = await read_message(reader)

        assert first["result"] == {"a": 1}
        assert second["result"] == [1, 2]
        assert await read_message(reader) is None

    @pytest.mark.asyncio
    async def test_truncated_body(self):
        reader = asyncio.StreamReader()
        reader.feed_data(b"Content-Length: 50\r\n\r\n{\"id\":")
        reader.feed_eof()

        assert await read_message(reader) is None

    @pytest.mark.asyncio
    async def test_missing_length(self):
        reader = asyncio.StreamReader()
        reader.feed_data(b"Content-Type: x\r\n\r\n")
        reader.feed_eof()

        assert await read_message(reader) == {}


# ============================================================================
# Client request correlation
# ============================================================================


class FakeStdin:
    def __init__(self):
        self.written = []

    def write(self, data: bytes):
        self.written.append(_body(data))


class FakeProcess:
    def __init__(self):
        self.stdin = FakeStdin()
        self.returncode = None


@pytest.fixture
def client():
    client = LSPClient(PYTHON_SERVER, "file:///tmp")
    client.process = FakeProcess()
    client._initialized = True
    return client


class TestLSPClient:
    @pytest.mark.asyncio
    async def test_response_resolves_request(self, client):
        task = asyncio.ensure_future(client.completion("/tmp/a.py", 0, 1))
        await asyncio.sleep(0)

        request = client.process.stdin.written[-1]
        client._handle_message({"jsonrpc": "2.0", "id": request["id"], "result": [{"label": "x"}]})

        assert await task == [{"label": "x"}]
        assert client._pending_requests == {}

    @pytest.mark.asyncio
    async def test_error_response_raises(self, client):
        task = asyncio.ensure_future(client.completion("/tmp/a.py", 0, 1))
        await asyncio.sleep(0)

        request = client.process.stdin.written[-1]
        client._handle_message({
            "id": request["id"],
            "error": {"code": LSPErrorCodes.ContentModified, "message": "modified"},
        })

        with pytest.raises(LSPResponseError) as exc_info:
            await task
        assert exc_info.value.code == LSPErrorCodes.ContentModified

    @pytest.mark.asyncio
    async def test_cancelled_request_notifies_server(self, client):
        task = asyncio.ensure_future(client.completion("/tmp/a.py", 0, 1))
        await asyncio.sleep(0)
        request_id = client.process.stdin.written[-1]["id"]

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        cancel = client.process.stdin.written[-1]
        assert cancel["method"] == "$/cancelRequest"
        assert cancel["params"] == {"id": request_id}

    def test_server_request_is_answered(self, client):
        client._handle_message({"id": "cfg-1", "method": "workspace/configuration", "params": {}})

        assert client.process.stdin.written[-1] == {"jsonrpc": "2.0", "id": "cfg-1", "result": None}

    @pytest.mark.asyncio
    async def test_not_running(self):
        client = LSPClient(PYTHON_SERVER, "file:///tmp")

        with pytest.raises(ConnectionError):
            await client.completion("/tmp/a.py", 0, 0)

    @pytest.mark.asyncio
    async def test_server_exit_fails_pending(self, client):
        task = asyncio.ensure_future(client.completion("/tmp/a.py", 0, 1))
        await asyncio.sleep(0)

        client._fail_pending(ConnectionError("LSP server exited"))

        with pytest.raises(ConnectionError):
            await task

    def test_capabilities(self, client):
        assert not client.supports_completion
        client.capabilities = {"completionProvider": {"resolveProvider": True}}
        assert client.supports_completion
        assert client.supports_resolve


# ============================================================================
# Provider
# ============================================================================


class FakeClient:
    """Stands in for a started LSPClient."""

    def __init__(self, result=None, error=None, resolve=False, resolved=None):
        self.config = PYTHON_SERVER
        self.is_running = True
        self.supports_completion = True
        self.supports_resolve = resolve
        self.result = result
        self.error = error
        self.resolved = resolved
        self.notifications = []

    async def completion(self, file_path, line, character):
        if self.error is not None:
            raise self.error
        return self.result

    async def resolve_completion_item(self, item):
        if self.error is not None:
            raise self.error
        return self.resolved

    def notify_document_open(self, file_path, content, version=1):
        self.notifications.append(("open", version, content))

    def notify_document_change(self, file_path, content, version):
        self.notifications.append(("change", version, content))

    def notify_document_close(self, file_path):
        self.notifications.append(("close",))


class TestLSPCompletionProvider:
    def test_document_sync(self, tmp_path):
        client = FakeClient()
        provider = LSPCompletionProvider(client, str(tmp_path / "a.py"))

        provider.open("x")
        provider.update("x")
        provider.update("xy")
        provider.close()

        assert client.notifications == [("open", 1, "x"), ("change", 2, "xy"), ("close",)]
        assert provider.provider_id == "lsp:python"

    def test_supports_only_its_open_document(self, tmp_path):
        client = FakeClient()
        path = str(tmp_path / "a.py")
        provider = LSPCompletionProvider(client, path)

        assert not provider.supports_completion(path)
        provider.open("")
        assert provider.supports_completion(path)
        assert not provider.supports_completion(str(tmp_path / "b.py"))

        client.is_running = False
        assert not provider.supports_completion(path)

    @pytest.mark.asyncio
    async def test_completion_list_with_defaults(self, tmp_path):
        result = {
            "isIncomplete": True,
            "itemDefaults": {
                "editRange": {
                    "insert": {"start": {"line": 0, "character": 0}, "end": {"line": 0, "character": 2}},
                    "replace": {"start": {"line": 0, "character": 0}, "end": {"line": 0, "character": 4}},
                },
                "insertTextFormat": 2,
            },
            "items": [{"label": "foo"}, {"label": "foobar", "insertTextFormat": 1}],
        }
        provider = LSPCompletionProvider(FakeClient(result=result), str(tmp_path / "a.py"))

        response = await provider.request_completion(Position(0, 2))

        assert response.is_incomplete
        assert [item.label for item in response.items] == ["foo", "foobar"]
        assert isinstance(response.item_defaults.edit_range, InsertReplaceRange)
        assert response.item_defaults.insert_text_format == 2

    @pytest.mark.asyncio
    async def test_null_result_is_empty(self, tmp_path):
        provider = LSPCompletionProvider(FakeClient(result=None), str(tmp_path / "a.py"))

        response = await provider.request_completion(Position(0, 0))

        assert response.ok and response.items == []

    @pytest.mark.asyncio
    async def test_server_error_becomes_provider_error(self, tmp_path):
        error = LSPResponseError(LSPErrorCodes.InternalError, "boom")
        provider = LSPCompletionProvider(FakeClient(error=error), str(tmp_path / "a.py"))

        with pytest.raises(ProviderError) as exc_info:
            await provider.request_completion(Position(0, 0))
        assert exc_info.value.provider_id == "lsp:python"
        assert exc_info.value.code == LSPErrorCodes.InternalError

    @pytest.mark.asyncio
    async def test_connection_error_becomes_provider_error(self, tmp_path):
        provider = LSPCompletionProvider(
            FakeClient(error=ConnectionError("LSP server exited")), str(tmp_path / "a.py")
        )

        with pytest.raises(ProviderError):
            await provider.request_completion(Position(0, 0))

    @pytest.mark.asyncio
    async def test_resolve_unsupported_returns_item(self, tmp_path):
        provider = LSPCompletionProvider(FakeClient(resolve=False), str(tmp_path / "a.py"))
        item = CompletionItem(label="x")

        assert await provider.resolve_item(item) is item

    @pytest.mark.asyncio
    async def test_resolve(self, tmp_path):
        resolved = {"label": "len", "detail": "len(obj)", "documentation": {"kind": "markdown", "value": "docs"}}
        provider = LSPCompletionProvider(FakeClient(resolve=True, resolved=resolved), str(tmp_path / "a.py"))

        item = await provider.resolve_item(CompletionItem(label="len"))

        assert item.detail == "len(obj)"
        assert item.documentation.value == "docs"

    def test_resolve_payload_is_json(self):
        # Items are sent back to the server as-is
        item = CompletionItem(label="x", data={"id": 3})
        assert json.loads(json.dumps(item.to_dict()))["data"] == {"id": 3}
