"""
compl - Asynchronous completion aggregation for text editors

Merges candidates from language servers and snippet packages into one
ranked list.
"""

__version__ = "0.1.0"
__author__ = "compl contributors"

from compl.completion import CompletionEngine
from compl.config import CompletionConfig

__all__ = ["CompletionEngine", "CompletionConfig", "__version__"]
