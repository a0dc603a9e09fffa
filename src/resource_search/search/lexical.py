"""
Lexical search over resource metadata fields.
"""

from __future__ import annotations

from ..storage import ScoredResource, StorageBackend


class LexicalSearchStrategy:
    """Substring match on text fields plus exact tag membership."""

    def __init__(self, storage: StorageBackend) -> None:
        self.storage = storage

    def search(self, query: str) -> list[ScoredResource]:
        """Return approved matches, newest first; all approved when query is empty."""
        text = query.strip()
        return self.storage.find_approved(query=text or None)
