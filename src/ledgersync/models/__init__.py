"""Database models."""
from ledgersync.models.category import Category
from ledgersync.models.linked_account import LinkedAccount
from ledgersync.models.sync_log import SyncLog
from ledgersync.models.transaction import Transaction

__all__ = ["Category", "LinkedAccount", "SyncLog", "Transaction"]
