"""
Abstract State Storage Interface

DESIGN DECISION: Storage moves whole snapshot documents, nothing finer.
The codec decides what a snapshot contains; storage only decides where
it lives. This allows us to:
1. Keep the JSON file backend out of the ledger logic
2. Use in-memory storage for testing
3. Swap in another backend without touching the codec
"""

import copy
from abc import ABC, abstractmethod
from typing import Optional


class StateStorageInterface(ABC):
    """
    Abstract interface for snapshot storage.

    Any storage implementation must implement these methods.
    """

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable location used in logs."""
        pass

    @abstractmethod
    def read(self) -> Optional[dict]:
        """
        Read the stored snapshot document.

        Returns:
            The document, or None when nothing has been stored yet

        Raises:
            DecodeError: If something is stored but cannot be read
        """
        pass

    @abstractmethod
    def write(self, document: dict) -> None:
        """
        Replace the stored snapshot document.

        Implementations must never leave a partially written snapshot
        behind.

        Raises:
            EncodeError: If the document could not be written
        """
        pass


class InMemoryStateStorage(StateStorageInterface):
    """Keeps the document in memory. Used by tests and previews."""

    def __init__(self, document: Optional[dict] = None):
        self._document = copy.deepcopy(document) if document is not None else None
        self.write_count = 0

    @property
    def location(self) -> str:
        return "memory"

    @property
    def document(self) -> Optional[dict]:
        return self._document

    def read(self) -> Optional[dict]:
        return copy.deepcopy(self._document) if self._document is not None else None

    def write(self, document: dict) -> None:
        self._document = copy.deepcopy(document)
        self.write_count += 1
