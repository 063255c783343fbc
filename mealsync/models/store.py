from enum import Enum
from tortoise import fields, models


class TransactionStatus(str, Enum):
    PENDING = "PENDING"  # Open, accepting staged operations until expires_at
    COMMITTED = "COMMITTED"
    ROLLED_BACK = "ROLLED_BACK"


class StoreTransaction(models.Model):
    """A local stand-in for a remote transaction handle."""
    id = fields.CharField(pk=True, max_length=36)
    status = fields.CharEnumField(TransactionStatus, default=TransactionStatus.PENDING)
    expires_at = fields.FloatField()  # Epoch seconds
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "store_transactions"
        indexes = [
            ("status",),
        ]


class StagedOperation(models.Model):
    """
    A write waiting inside a transaction. Applied in `seq` order on commit,
    deleted on rollback.
    """
    id = fields.IntField(pk=True)
    store_transaction = fields.ForeignKeyField("models.StoreTransaction", related_name="operations")
    seq = fields.IntField()
    action = fields.CharField(max_length=16)  # 'create' or 'update'
    collection = fields.CharField(max_length=128)
    record_id = fields.CharField(max_length=255)
    data = fields.JSONField()
    permissions = fields.JSONField(default=list)

    class Meta:
        table = "staged_operations"
        indexes = [
            ("store_transaction_id", "seq"),  # Commit replays in order
        ]


class StoredRecord(models.Model):
    id = fields.IntField(pk=True)
    collection = fields.CharField(max_length=128)
    record_id = fields.CharField(max_length=255)
    data = fields.JSONField()
    permissions = fields.JSONField(default=list)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "stored_records"
        unique_together = (("collection", "record_id"),)
