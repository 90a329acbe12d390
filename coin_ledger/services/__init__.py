from .ledger import LedgerService
from .repository import LedgerRepository

__all__ = ["LedgerRepository", "LedgerService"]
