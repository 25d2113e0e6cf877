"""Collaborators of the viewer core: documents, rasters, suggestions, identity."""

from .base import DocumentStore, IdentityProvider, PageRasterSource, SuggestionStore
from .documents import FileDocumentStore, load_transcription
from .identity import StaticIdentityProvider

__all__ = [
    # Interfaces
    "DocumentStore",
    "IdentityProvider",
    "PageRasterSource",
    "SuggestionStore",
    # Implementations
    "FileDocumentStore",
    "StaticIdentityProvider",
    "load_transcription",
]
