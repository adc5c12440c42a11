"""
LSP Client - asyncio communication with a single language server.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from compl.lsp.config import LSPServerConfig
from compl.lsp.protocol import LSPErrorCodes, LSPMessage

logger = logging.getLogger(__name__)


class LSPResponseError(Exception):
    """Raised when the server answers a request with a JSON-RPC error"""

    def __init__(self, code: int, message: str):
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message


async def read_message(reader: asyncio.StreamReader) -> Optional[Dict]:
    """
    Read one Content-Length framed message.

    Returns:
        The decoded message, or None at end of stream
    """
    try:
        header = await reader.readuntil(b"\r\n\r\n")
    except asyncio.IncompleteReadError:
        return None

    content_length = LSPMessage.parse_content_length(header[:-4])
    if content_length <= 0:
        return {}

    try:
        content = await reader.readexactly(content_length)
    except asyncio.IncompleteReadError:
        return None
    return LSPMessage.decode(header + content)


class LSPClient:
    """
    Client for communicating with a Language Server.

    Manages:
    - Server process lifecycle (spawn, shutdown)
    - JSON-RPC message exchange over stdio
    - Request/response correlation via IDs and futures
    - $/cancelRequest when an awaiting task is cancelled
    """

    def __init__(self, config: LSPServerConfig, root_uri: str, startup_timeout: float = 30.0):
        """
        Initialize LSP client.

        Args:
            config: Server configuration
            root_uri: Project root as file:// URI
            startup_timeout: Seconds to wait for initialize/shutdown replies
        """
        self.config = config
        self.root_uri = root_uri
        self.startup_timeout = startup_timeout
        self.process: Optional[asyncio.subprocess.Process] = None
        self.capabilities: Dict[str, Any] = {}
        self._request_id = 0
        self._pending_requests: Dict[int, asyncio.Future] = {}
        self._reader_task: Optional[asyncio.Task] = None
        self._initialized = False

    async def start(self) -> bool:
        """
        Start the language server process and initialize.

        Returns:
            True if successfully initialized
        """
        if self.process is not None:
            return True

        try:
            logger.info(f"Starting LSP server: {' '.join(self.config.command)}")

            self.process = await asyncio.create_subprocess_exec(
                *self.config.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                cwd=self._uri_to_path(self.root_uri),
            )
            self._reader_task = asyncio.ensure_future(self._read_responses())

            request_id = self._next_id()
            init_result = await asyncio.wait_for(
                self._request(
                    LSPMessage.initialize(
                        self.root_uri, request_id, self.config.initialization_options
                    ),
                    request_id,
                ),
                timeout=self.startup_timeout,
            )

            self.capabilities = (init_result or {}).get("capabilities", {})
            self._send_notification(LSPMessage.initialized())
            self._initialized = True
            logger.info(f"LSP server initialized for {self.config.language_id}")
            return True

        except (OSError, asyncio.TimeoutError, LSPResponseError) as e:
            logger.error(f"Failed to start LSP server: {e}")
            await self.stop()
            return False

    async def stop(self):
        """Shutdown the language server gracefully."""
        if self.process is None:
            return

        try:
            if self._initialized:
                request_id = self._next_id()
                await asyncio.wait_for(
                    self._request(LSPMessage.shutdown(request_id), request_id),
                    timeout=self.startup_timeout,
                )
                self._send_notification(LSPMessage.exit())
            await asyncio.wait_for(self.process.wait(), timeout=5.0)

        except (OSError, asyncio.TimeoutError, LSPResponseError) as e:
            logger.warning(f"Error during graceful shutdown: {e}")
            if self.process.returncode is None:
                self.process.kill()

        finally:
            if self._reader_task is not None:
                self._reader_task.cancel()
            self._fail_pending(ConnectionError("LSP server stopped"))
            self.process = None
            self._reader_task = None
            self._initialized = False

    @property
    def is_running(self) -> bool:
        """Check if the server is running."""
        return self.process is not None and self.process.returncode is None and self._initialized

    @property
    def supports_completion(self) -> bool:
        return "completionProvider" in self.capabilities

    @property
    def supports_resolve(self) -> bool:
        provider = self.capabilities.get("completionProvider") or {}
        return bool(provider.get("resolveProvider"))

    async def completion(self, file_path: str, line: int, character: int) -> Any:
        """
        Request completions at a position.

        Returns:
            Raw result: None, an item list, or a CompletionList

        Raises:
            LSPResponseError: If the server replies with an error
        """
        request_id = self._next_id()
        uri = self._path_to_uri(file_path)
        return await self._request(LSPMessage.completion(uri, line, character, request_id), request_id)

    async def resolve_completion_item(self, item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Request the fully detailed version of a completion item."""
        request_id = self._next_id()
        return await self._request(LSPMessage.resolve_completion_item(item, request_id), request_id)

    def notify_document_open(self, file_path: str, content: str, version: int = 1):
        """Notify server that a document was opened."""
        uri = self._path_to_uri(file_path)
        self._send_notification(
            LSPMessage.text_document_did_open(uri, self.config.language_id, version, content)
        )

    def notify_document_change(self, file_path: str, content: str, version: int):
        """Send the full new content of a document."""
        uri = self._path_to_uri(file_path)
        self._send_notification(LSPMessage.text_document_did_change(uri, version, content))

    def notify_document_close(self, file_path: str):
        """Notify server that a document was closed."""
        uri = self._path_to_uri(file_path)
        self._send_notification(LSPMessage.text_document_did_close(uri))

    # --- Internal methods ---

    def _next_id(self) -> int:
        """Get next request ID."""
        self._request_id += 1
        return self._request_id

    def _write(self, message: bytes) -> bool:
        if not self.process or not self.process.stdin:
            return False
        try:
            self.process.stdin.write(message)
            return True
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.warning(f"Failed to write to LSP server: {e}")
            return False

    def _send_notification(self, message: bytes):
        """Send notification (no response expected)."""
        self._write(message)

    async def _request(self, message: bytes, request_id: int) -> Any:
        """Send request and wait for its result."""
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._pending_requests[request_id] = future

        try:
            if not self._write(message):
                raise ConnectionError("LSP server is not running")
            response = await future
        except asyncio.CancelledError:
            # Best effort: the server may still answer, the reply is then ignored
            self._send_notification(LSPMessage.cancel_request(request_id))
            raise
        finally:
            self._pending_requests.pop(request_id, None)

        if "error" in response:
            error = response["error"] or {}
            raise LSPResponseError(
                error.get("code", LSPErrorCodes.UnknownErrorCode), error.get("message", "")
            )
        return response.get("result")

    async def _read_responses(self):
        """Background task to read server messages."""
        reader = self.process.stdout
        while True:
            try:
                message = await read_message(reader)
            except json.JSONDecodeError as e:
                logger.error(f"Failed to parse response: {e}")
                continue

            if message is None:
                logger.info(f"LSP server for {self.config.language_id} closed its output")
                break
            self._handle_message(message)

        self._fail_pending(ConnectionError("LSP server exited"))

    def _handle_message(self, message: Dict):
        """Dispatch an incoming response, server request or notification."""
        if "id" in message and "method" not in message:
            future = self._pending_requests.get(message["id"])
            if future is not None and not future.done():
                future.set_result(message)
            return

        method = message.get("method", "")
        if "id" in message:
            # Server-to-client request (workspace/configuration, progress, ...)
            logger.debug(f"Answering server request {method} with null")
            self._write(LSPMessage.response(message["id"]))
        else:
            logger.debug(f"Ignoring server notification {method}")

    def _fail_pending(self, error: Exception):
        for future in self._pending_requests.values():
            if not future.done():
                future.set_exception(error)
        self._pending_requests.clear()

    @staticmethod
    def _path_to_uri(path: str) -> str:
        """Convert file path to file:// URI."""
        return Path(path).resolve().as_uri()

    @staticmethod
    def _uri_to_path(uri: str) -> str:
        """Convert file:// URI to file path."""
        if uri.startswith("file://"):
            return uri[7:]
        return uri
