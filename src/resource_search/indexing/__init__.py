"""Indexing components for the resource store."""

from .loader import load_export, parse_resource
from .pipeline import IndexingResult, ResourceIndexer
from .text import build_resource_text, embedded_fields

__all__ = [
    "load_export",
    "parse_resource",
    "IndexingResult",
    "ResourceIndexer",
    "build_resource_text",
    "embedded_fields",
]
