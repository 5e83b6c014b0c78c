"""
Banking system wiring: storage, audit trail and account manager built from config.
"""

from typing import Optional

from .accounts import AccountManager
from .audit import AuditTrail
from .config import BankingConfig, get_config
from .currency import Currency
from .storage import StorageInterface, create_storage


class BankingSystem:
    """Banking system with all components initialized"""

    def __init__(
        self,
        config: Optional[BankingConfig] = None,
        storage: Optional[StorageInterface] = None
    ):
        self.config = config or get_config()
        self.storage = storage or create_storage(self.config.database_url)
        self.currency = Currency.from_code(self.config.currency)

        self.audit_trail = AuditTrail(self.storage) if self.config.enable_audit_logging else None
        self.account_manager = AccountManager(self.storage, self.audit_trail, self.currency)

    def close(self) -> None:
        self.storage.close()
