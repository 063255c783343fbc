# mealsync/models/__init__.py
from .store import StagedOperation, StoredRecord, StoreTransaction, TransactionStatus

# Export all models
__all__ = [
    "StagedOperation",
    "StoreTransaction",
    "StoredRecord",
    "TransactionStatus",
]
