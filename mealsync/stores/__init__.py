# mealsync/stores/__init__.py
from .base import RecordStore, StagedWrite
from .appwrite import AppwriteStore
from .local import LocalStore

__all__ = [
    "AppwriteStore",
    "LocalStore",
    "RecordStore",
    "StagedWrite",
]
