"""
Account Management Module

A bank account holds a balance and an outstanding loan. The AccountManager
owns every account and the bank-wide pool of total deposits: deposits and
loan repayments grow the pool, withdrawals and approved loans shrink it.

Approved loans are recorded against the account but are not credited to its
balance, so the sum of account balances and the total deposits differ by the
outstanding loans.
"""

import threading
import uuid
from datetime import datetime, timezone
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .audit import AuditEventType, AuditTrail
from .currency import AmountLike, Currency, Money, to_money
from .logging_config import get_logger, log_action
from .storage import StorageInterface, StorageRecord


logger = get_logger("banking_app.accounts")


@dataclass
class Account(StorageRecord):
    """
    Single bank account with holder name, balance and loan amount
    """
    account_holder: str
    currency: Currency
    balance: Money
    loan: Money = None

    def __post_init__(self):
        if self.loan is None:
            self.loan = Money.zero(self.currency)

        # New accounts never start overdrawn; checked ahead of the holder name
        if self.balance.is_negative():
            raise ValueError("Initial deposit can't be negative.")
        if self.loan.is_negative():
            raise ValueError("Loan can't be negative.")

        if self.account_holder is None:
            raise TypeError("Account holder cannot be None")

        if self.balance.currency != self.currency:
            raise ValueError("Balance currency must match account currency")
        if self.loan.currency != self.currency:
            raise ValueError("Loan currency must match account currency")

    @classmethod
    def open(
        cls,
        account_holder: str,
        initial_deposit: AmountLike,
        currency: Currency = Currency.EUR
    ) -> 'Account':
        """
        Create a new account with no loan

        Args:
            account_holder: Holder's name (can't be None)
            initial_deposit: Opening balance (can't be negative, zero allowed)
            currency: Account currency

        Raises:
            TypeError: account_holder is None
            ValueError: initial_deposit is negative
        """
        now = datetime.now(timezone.utc)
        return cls(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            account_holder=account_holder,
            currency=currency,
            balance=to_money(initial_deposit, currency)
        )

    def _touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)

    def deposit(self, amount: AmountLike) -> None:
        """Add money to the balance. Amount must be positive."""
        amount = to_money(amount, self.currency)
        if not amount.is_positive():
            raise ValueError("Deposit amount must be positive")
        self.balance = self.balance + amount
        self._touch()

    def withdraw(self, amount: AmountLike) -> bool:
        """
        Take money from the balance.

        Returns False and leaves the balance alone when funds are insufficient.
        """
        amount = to_money(amount, self.currency)
        if not amount.is_positive():
            raise ValueError("Withdrawal amount must be positive")
        if amount > self.balance:
            return False
        self.balance = self.balance - amount
        self._touch()
        return True

    def approve_loan(self, amount: AmountLike) -> None:
        """Add to the outstanding loan. Amount must be positive."""
        amount = to_money(amount, self.currency)
        if not amount.is_positive():
            raise ValueError("Loan amount must be positive")
        self.loan = self.loan + amount
        self._touch()

    def repay_loan(self, amount: AmountLike) -> bool:
        """
        Reduce the outstanding loan.

        Returns False and leaves the loan alone when the repayment exceeds it.
        """
        amount = to_money(amount, self.currency)
        if not amount.is_positive():
            raise ValueError("Repayment must be positive")
        if amount > self.loan:
            return False
        self.loan = self.loan - amount
        self._touch()
        return True

    def to_dict(self) -> Dict[str, Any]:
        result = self._timestamps()
        result.update({
            'account_holder': self.account_holder,
            'currency': self.currency.code,
            'balance': str(self.balance.amount),
            'loan': str(self.loan.amount),
        })
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        data = cls._parse_timestamps(data)
        currency = Currency.from_code(data['currency'])
        return cls(
            id=data['id'],
            created_at=data['created_at'],
            updated_at=data['updated_at'],
            account_holder=data['account_holder'],
            currency=currency,
            balance=Money(Decimal(data['balance']), currency),
            loan=Money(Decimal(data['loan']), currency)
        )


class AccountManager:
    """
    Manages accounts and the bank's total deposits
    """

    accounts_table = "accounts"
    state_table = "bank_state"
    totals_id = "totals"

    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: Optional[AuditTrail] = None,
        currency: Currency = Currency.EUR
    ):
        self.storage = storage
        self.audit_trail = audit_trail
        self.currency = currency
        self._lock = threading.RLock()
        self._total_deposits = self._load_total_deposits()

    def _load_total_deposits(self) -> Money:
        state = self.storage.load(self.state_table, self.totals_id)
        if not state:
            return Money.zero(self.currency)
        if state['currency'] != self.currency.code:
            raise ValueError(
                f"Stored bank currency {state['currency']} does not match {self.currency.code}"
            )
        return Money(Decimal(state['total_deposits']), self.currency)

    def _persist(self, account: Account, total_deposits: Money) -> None:
        """Write the account and the bank totals as one unit"""
        with self.storage.atomic():
            self.storage.save(self.accounts_table, account.id, account.to_dict())
            self.storage.save(self.state_table, self.totals_id, {
                'id': self.totals_id,
                'currency': self.currency.code,
                'total_deposits': str(total_deposits.amount),
                'updated_at': datetime.now(timezone.utc).isoformat()
            })
        self._total_deposits = total_deposits

    def _audit(self, event_type: AuditEventType, account: Account, **metadata) -> None:
        if self.audit_trail is None:
            return
        metadata.setdefault('account_holder', account.account_holder)
        self.audit_trail.log_event(
            event_type=event_type,
            entity_type="account",
            entity_id=account.id,
            metadata=metadata
        )

    def _find_account(self, account_holder: str) -> Optional[Account]:
        records = self.storage.find(self.accounts_table, {"account_holder": account_holder})
        if records:
            return Account.from_dict(records[0])
        return None

    def _amount(self, amount: AmountLike) -> Money:
        return to_money(amount, self.currency)

    def add_account(self, account_holder: str, initial_deposit: AmountLike) -> Account:
        """
        Open an account with an initial deposit

        Args:
            account_holder: Name of the new account holder
            initial_deposit: Opening deposit, must be positive

        Returns:
            Created Account

        Raises:
            ValueError: deposit is zero or negative, or the holder already has an account
            TypeError: account_holder is None
        """
        deposit = self._amount(initial_deposit)
        if not deposit.is_positive():
            raise ValueError("Initial deposit must be positive.")

        with self._lock:
            if account_holder is not None and self._find_account(account_holder):
                raise ValueError(f"Account already exists for {account_holder}")

            account = Account.open(account_holder, deposit, self.currency)
            self._persist(account, self._total_deposits + deposit)

        self._audit(AuditEventType.ACCOUNT_CREATED, account, initial_deposit=deposit.amount)
        log_action(logger, "info", f"Opened account for {account_holder}",
                   action="add_account", resource=account.id,
                   extra={"initial_deposit": str(deposit.amount)})
        return account

    def deposit(self, account_holder: str, amount: AmountLike) -> bool:
        """
        Deposit money into an account

        Returns:
            True if the deposit was made, False if the account does not exist

        Raises:
            ValueError: amount is negative (or zero, for an existing account)
        """
        amount = self._amount(amount)
        if amount.is_negative():
            raise ValueError("Deposit amount cannot be negative")

        with self._lock:
            account = self._find_account(account_holder)
            if account is None:
                log_action(logger, "warning", f"Deposit to unknown account {account_holder}",
                           action="deposit")
                return False
            account.deposit(amount)
            self._persist(account, self._total_deposits + amount)

        self._audit(AuditEventType.DEPOSIT_MADE, account, amount=amount.amount)
        log_action(logger, "info", f"Deposited {amount} to {account_holder}",
                   action="deposit", resource=account.id)
        return True

    def withdraw(self, account_holder: str, amount: AmountLike) -> bool:
        """
        Withdraw money from an account

        Returns:
            True if the withdrawal was made, False if the account does not
            exist or the balance is insufficient

        Raises:
            ValueError: amount is negative (or zero, for an existing account)
        """
        amount = self._amount(amount)
        if amount.is_negative():
            raise ValueError("Withdrawal amount cannot be negative")

        with self._lock:
            account = self._find_account(account_holder)
            if account is None:
                log_action(logger, "warning", f"Withdrawal from unknown account {account_holder}",
                           action="withdraw")
                return False
            if not account.withdraw(amount):
                self._audit(AuditEventType.WITHDRAWAL_DECLINED, account,
                            amount=amount.amount, reason="insufficient_funds")
                log_action(logger, "info", f"Withdrawal of {amount} declined for {account_holder}",
                           action="withdraw", resource=account.id,
                           extra={"reason": "insufficient_funds"})
                return False
            self._persist(account, self._total_deposits - amount)

        self._audit(AuditEventType.WITHDRAWAL_MADE, account, amount=amount.amount)
        log_action(logger, "info", f"Withdrew {amount} from {account_holder}",
                   action="withdraw", resource=account.id)
        return True

    def approve_loan(self, account_holder: str, loan_amount: AmountLike) -> bool:
        """
        Approve a loan for an account holder

        The loan is lent out of total deposits and is not credited to the
        holder's balance.

        Returns:
            True if approved, False if the account does not exist or the loan
            exceeds total deposits

        Raises:
            ValueError: amount is negative (or zero, for an existing account)
        """
        amount = self._amount(loan_amount)
        if amount.is_negative():
            raise ValueError("Loan amount cannot be negative")

        with self._lock:
            account = self._find_account(account_holder)
            if account is None:
                log_action(logger, "warning", f"Loan requested for unknown account {account_holder}",
                           action="approve_loan")
                return False
            if amount > self._total_deposits:
                self._audit(AuditEventType.LOAN_DECLINED, account, amount=amount.amount,
                            reason="insufficient_total_deposits",
                            total_deposits=self._total_deposits.amount)
                log_action(logger, "info", f"Loan of {amount} declined for {account_holder}",
                           action="approve_loan", resource=account.id,
                           extra={"reason": "insufficient_total_deposits"})
                return False
            account.approve_loan(amount)
            self._persist(account, self._total_deposits - amount)

        self._audit(AuditEventType.LOAN_APPROVED, account, amount=amount.amount)
        log_action(logger, "info", f"Approved loan of {amount} for {account_holder}",
                   action="approve_loan", resource=account.id)
        return True

    def repay_loan(self, account_holder: str, amount: AmountLike) -> bool:
        """
        Repay part of an account holder's loan

        Returns:
            True if the repayment was made, False if the account does not
            exist or the repayment exceeds the outstanding loan

        Raises:
            ValueError: amount is negative (or zero, for an existing account)
        """
        amount = self._amount(amount)
        if amount.is_negative():
            raise ValueError("Repayment amount cannot be negative")

        with self._lock:
            account = self._find_account(account_holder)
            if account is None:
                log_action(logger, "warning", f"Repayment for unknown account {account_holder}",
                           action="repay_loan")
                return False
            if not account.repay_loan(amount):
                self._audit(AuditEventType.LOAN_REPAYMENT_DECLINED, account,
                            amount=amount.amount, reason="exceeds_loan")
                log_action(logger, "info", f"Repayment of {amount} declined for {account_holder}",
                           action="repay_loan", resource=account.id,
                           extra={"reason": "exceeds_loan"})
                return False
            self._persist(account, self._total_deposits + amount)

        self._audit(AuditEventType.LOAN_REPAYMENT_MADE, account, amount=amount.amount)
        log_action(logger, "info", f"Repaid {amount} of loan for {account_holder}",
                   action="repay_loan", resource=account.id)
        return True

    def get_total_deposits(self) -> Money:
        """Total deposits available in the bank"""
        return self._total_deposits

    def get_balance(self, account_holder: str) -> Optional[Money]:
        """Balance of an account, or None if it does not exist"""
        account = self._find_account(account_holder)
        return account.balance if account else None

    def get_loan(self, account_holder: str) -> Optional[Money]:
        """Outstanding loan of an account, or None if it does not exist"""
        account = self._find_account(account_holder)
        return account.loan if account else None

    def get_account(self, account_holder: str) -> Optional[Account]:
        return self._find_account(account_holder)

    def list_accounts(self) -> List[Account]:
        """All accounts in the order they were opened"""
        return [Account.from_dict(data) for data in self.storage.load_all(self.accounts_table)]

    def get_total_account_balances(self) -> Money:
        total = Money.zero(self.currency)
        for account in self.list_accounts():
            total = total + account.balance
        return total
