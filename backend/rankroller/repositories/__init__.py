"""Repository classes responsible for save persistence."""

from .in_memory import InMemorySaveRepository
from .protocols import SaveRepositoryProtocol
from .save_repository import MongoSaveRepository

__all__ = [
    "InMemorySaveRepository",
    "MongoSaveRepository",
    "SaveRepositoryProtocol",
]
