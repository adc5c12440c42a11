"""
Exceptions raised inside the completion pipeline.

None of these are fatal to the host: each is handled locally and degrades to
fewer (or no) candidates.
"""


class CompletionError(Exception):
    """Base exception for completion pipeline errors"""

    pass


class ProviderError(CompletionError):
    """Raised when a provider explicitly fails a request"""

    def __init__(self, message: str, provider_id: str = "", code: int = 0):
        super().__init__(message)
        self.provider_id = provider_id
        self.code = code


class DecodeError(CompletionError):
    """Raised when static provider data (snippet files, manifests) fails to parse"""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class ApplyEditFailure(CompletionError):
    """Raised by a text surface when a cursor move or text edit cannot be applied"""

    pass
