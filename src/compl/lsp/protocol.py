"""
LSP Protocol definitions - JSON-RPC message encoding for completion requests.

Implements the Language Server Protocol message types used by the completion
provider and the Content-Length wire format.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
import json


@dataclass
class Position:
    """LSP Position (0-indexed line and character)."""

    line: int
    character: int

    def to_dict(self) -> Dict[str, int]:
        return {"line": self.line, "character": self.character}

    @classmethod
    def from_dict(cls, data: Dict) -> "Position":
        return cls(line=data["line"], character=data["character"])


@dataclass
class Range:
    """LSP Range with start and end positions."""

    start: Position
    end: Position

    def to_dict(self) -> Dict:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict) -> "Range":
        return cls(
            start=Position.from_dict(data["start"]), end=Position.from_dict(data["end"])
        )


class LSPMessage:
    """LSP-specific message formatting."""

    @staticmethod
    def initialize(
        root_uri: str,
        request_id: int,
        initialization_options: Optional[Dict] = None,
    ) -> bytes:
        """Create initialize request advertising completion support."""
        params: Dict[str, Any] = {
            "processId": None,
            "rootUri": root_uri,
            "capabilities": {
                "textDocument": {
                    "completion": {
                        "completionItem": {
                            "snippetSupport": True,
                            "insertReplaceSupport": True,
                            "documentationFormat": ["markdown", "plaintext"],
                            "resolveSupport": {
                                "properties": [
                                    "documentation",
                                    "detail",
                                    "additionalTextEdits",
                                ]
                            },
                        },
                        "completionList": {
                            "itemDefaults": [
                                "editRange",
                                "insertTextFormat",
                                "insertTextMode",
                                "data",
                            ]
                        },
                    },
                    "synchronization": {
                        "didOpen": True,
                        "didClose": True,
                        "didChange": True,
                    },
                }
            },
        }
        if initialization_options is not None:
            params["initializationOptions"] = initialization_options
        return LSPMessage._encode(
            {"jsonrpc": "2.0", "id": request_id, "method": "initialize", "params": params}
        )

    @staticmethod
    def initialized() -> bytes:
        """Create initialized notification."""
        return LSPMessage._encode({"jsonrpc": "2.0", "method": "initialized", "params": {}})

    @staticmethod
    def shutdown(request_id: int) -> bytes:
        """Create shutdown request."""
        return LSPMessage._encode({"jsonrpc": "2.0", "id": request_id, "method": "shutdown"})

    @staticmethod
    def exit() -> bytes:
        """Create exit notification."""
        return LSPMessage._encode({"jsonrpc": "2.0", "method": "exit"})

    @staticmethod
    def text_document_did_open(
        uri: str, language_id: str, version: int, text: str
    ) -> bytes:
        """Notify server that a document was opened."""
        return LSPMessage._encode(
            {
                "jsonrpc": "2.0",
                "method": "textDocument/didOpen",
                "params": {
                    "textDocument": {
                        "uri": uri,
                        "languageId": language_id,
                        "version": version,
                        "text": text,
                    }
                },
            }
        )

    @staticmethod
    def text_document_did_change(uri: str, version: int, text: str) -> bytes:
        """Notify server of a full-content document change."""
        return LSPMessage._encode(
            {
                "jsonrpc": "2.0",
                "method": "textDocument/didChange",
                "params": {
                    "textDocument": {"uri": uri, "version": version},
                    "contentChanges": [{"text": text}],
                },
            }
        )

    @staticmethod
    def text_document_did_close(uri: str) -> bytes:
        """Notify server that a document was closed."""
        return LSPMessage._encode(
            {
                "jsonrpc": "2.0",
                "method": "textDocument/didClose",
                "params": {"textDocument": {"uri": uri}},
            }
        )

    @staticmethod
    def completion(uri: str, line: int, character: int, request_id: int) -> bytes:
        """Create textDocument/completion request."""
        return LSPMessage._encode(
            {
                "jsonrpc": "2.0",
                "id": request_id,
                "method": "textDocument/completion",
                "params": {
                    "textDocument": {"uri": uri},
                    "position": {"line": line, "character": character},
                    "context": {"triggerKind": 1},
                },
            }
        )

    @staticmethod
    def resolve_completion_item(item: Dict[str, Any], request_id: int) -> bytes:
        """Create completionItem/resolve request."""
        return LSPMessage._encode(
            {
                "jsonrpc": "2.0",
                "id": request_id,
                "method": "completionItem/resolve",
                "params": item,
            }
        )

    @staticmethod
    def cancel_request(request_id: int) -> bytes:
        """Create $/cancelRequest notification."""
        return LSPMessage._encode(
            {"jsonrpc": "2.0", "method": "$/cancelRequest", "params": {"id": request_id}}
        )

    @staticmethod
    def response(request_id: Any, result: Any = None) -> bytes:
        """Create a reply to a server-to-client request."""
        return LSPMessage._encode({"jsonrpc": "2.0", "id": request_id, "result": result})

    @staticmethod
    def _encode(message: Dict) -> bytes:
        """Encode message with Content-Length header (LSP wire format)."""
        content = json.dumps(message).encode("utf-8")
        header = f"Content-Length: {len(content)}\r\n\r\n".encode("ascii")
        return header + content

    @staticmethod
    def decode(data: bytes) -> Optional[Dict]:
        """Decode LSP message from wire format."""
        # Find header/content separator
        if b"\r\n\r\n" not in data:
            return None
        header_end = data.index(b"\r\n\r\n")
        content = data[header_end + 4 :]
        return json.loads(content.decode("utf-8"))

    @staticmethod
    def parse_content_length(header: bytes) -> int:
        """Extract the Content-Length value from a header block."""
        content_length = 0
        for line in header.decode("ascii").split("\r\n"):
            if line.lower().startswith("content-length:"):
                content_length = int(line.split(":", 1)[1].strip())
        return content_length


# LSP Error Codes
class LSPErrorCodes:
    """Standard LSP error codes."""

    ParseError = -32700
    InvalidRequest = -32600
    MethodNotFound = -32601
    InvalidParams = -32602
    InternalError = -32603
    ServerNotInitialized = -32002
    UnknownErrorCode = -32001
    RequestCancelled = -32800
    ContentModified = -32801
