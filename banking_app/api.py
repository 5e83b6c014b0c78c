"""
FastAPI REST API Module

Exposes account opening, deposits, withdrawals, loans, bank totals and the
audit integrity check over HTTP. Runs on port 8090 by default.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, status
from pydantic import BaseModel, Field
import uvicorn

from .accounts import Account
from .config import get_config
from .currency import Money
from .logging_config import setup_logging
from .system import BankingSystem


class OpenAccountRequest(BaseModel):
    account_holder: str
    initial_deposit: str = Field(..., description="Decimal amount as string")


class AmountRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")


def _money(value: Optional[Money]) -> Optional[str]:
    return str(value.amount) if value is not None else None


def _account_view(account: Account) -> Dict[str, Any]:
    return {
        "id": account.id,
        "account_holder": account.account_holder,
        "currency": account.currency.code,
        "balance": _money(account.balance),
        "loan": _money(account.loan),
        "created_at": account.created_at.isoformat(),
        "updated_at": account.updated_at.isoformat()
    }


def create_app(system: Optional[BankingSystem] = None) -> FastAPI:
    """Create the API application around a banking system"""
    if system is None:
        system = BankingSystem()

    app = FastAPI(
        title="Banking Application API",
        description="Accounts, deposits, withdrawals and loans",
        version="1.0.0"
    )
    app.state.banking_system = system

    def get_banking_system() -> BankingSystem:
        return app.state.banking_system

    def operation_result(system: BankingSystem, holder: str, success: bool) -> Dict[str, Any]:
        manager = system.account_manager
        return {
            "success": success,
            "account_holder": holder,
            "balance": _money(manager.get_balance(holder)),
            "loan": _money(manager.get_loan(holder)),
            "total_deposits": _money(manager.get_total_deposits())
        }

    def run_operation(system: BankingSystem, operation: str, holder: str, amount: str):
        try:
            success = getattr(system.account_manager, operation)(holder, amount)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return operation_result(system, holder, success)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.post("/accounts", status_code=status.HTTP_201_CREATED)
    async def open_account(
        request: OpenAccountRequest,
        system: BankingSystem = Depends(get_banking_system)
    ):
        """Open an account with an initial deposit"""
        try:
            account = system.account_manager.add_account(
                request.account_holder, request.initial_deposit
            )
        except (ValueError, TypeError) as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _account_view(account)

    @app.get("/accounts")
    async def list_accounts(system: BankingSystem = Depends(get_banking_system)):
        """List all accounts"""
        return {"accounts": [_account_view(a) for a in system.account_manager.list_accounts()]}

    @app.get("/accounts/{account_holder}")
    async def get_account(
        account_holder: str,
        system: BankingSystem = Depends(get_banking_system)
    ):
        account = system.account_manager.get_account(account_holder)
        if not account:
            raise HTTPException(status_code=404, detail="Account not found")
        return _account_view(account)

    @app.post("/accounts/{account_holder}/deposit")
    async def deposit(
        account_holder: str,
        request: AmountRequest,
        system: BankingSystem = Depends(get_banking_system)
    ):
        return run_operation(system, "deposit", account_holder, request.amount)

    @app.post("/accounts/{account_holder}/withdraw")
    async def withdraw(
        account_holder: str,
        request: AmountRequest,
        system: BankingSystem = Depends(get_banking_system)
    ):
        return run_operation(system, "withdraw", account_holder, request.amount)

    @app.post("/accounts/{account_holder}/loan")
    async def approve_loan(
        account_holder: str,
        request: AmountRequest,
        system: BankingSystem = Depends(get_banking_system)
    ):
        """Approve a loan; it is not credited to the balance"""
        return run_operation(system, "approve_loan", account_holder, request.amount)

    @app.post("/accounts/{account_holder}/loan/repayment")
    async def repay_loan(
        account_holder: str,
        request: AmountRequest,
        system: BankingSystem = Depends(get_banking_system)
    ):
        return run_operation(system, "repay_loan", account_holder, request.amount)

    @app.get("/bank/totals")
    async def bank_totals(system: BankingSystem = Depends(get_banking_system)):
        """Total deposits alongside the sum of account balances"""
        manager = system.account_manager
        return {
            "currency": manager.currency.code,
            "total_deposits": _money(manager.get_total_deposits()),
            "total_account_balances": _money(manager.get_total_account_balances())
        }

    @app.get("/audit/verify")
    async def verify_audit(system: BankingSystem = Depends(get_banking_system)):
        if system.audit_trail is None:
            raise HTTPException(status_code=404, detail="Audit logging is disabled")
        return system.audit_trail.verify_integrity()

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None):
    """Run the FastAPI server"""
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    uvicorn.run(
        create_app(BankingSystem(config)),
        host=host or config.api_host,
        port=port or config.api_port,
        log_level=config.log_level.lower()
    )
