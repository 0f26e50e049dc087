"""
Persistence Package

Snapshot codec, storage backends and the debounced autosave.
Currently implements a JSON file backend, but designed to be swappable.
"""

from household_ledger.persistence.autosave import DebouncedSaver
from household_ledger.persistence.codec import (
    decode_state,
    encode_state,
    load_state_or_default,
)
from household_ledger.persistence.interface import (
    InMemoryStateStorage,
    StateStorageInterface,
)
from household_ledger.persistence.json_file import JsonFileStateStorage

__all__ = [
    # Codec
    "decode_state",
    "encode_state",
    "load_state_or_default",
    # Interfaces
    "InMemoryStateStorage",
    "StateStorageInterface",
    # File implementation
    "JsonFileStateStorage",
    # Autosave
    "DebouncedSaver",
]
