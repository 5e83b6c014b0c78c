"""
Scripted walkthrough of the banking application.

Opens two accounts, moves money through deposits, withdrawals and a loan,
then prints the totals. The final two lines show the gap between the sum of
account balances and total deposits left by loans that are not credited to
the borrower's balance.
"""

from typing import Any, Callable, Dict, Optional

from .accounts import AccountManager
from .storage import InMemoryStorage


def run_demo(
    manager: Optional[AccountManager] = None,
    out: Callable[[str], Any] = print
) -> Dict[str, Any]:
    """
    Run the walkthrough and report each step through ``out``.

    Returns:
        The figures that were printed, keyed by step
    """
    if manager is None:
        manager = AccountManager(InMemoryStorage())

    manager.add_account("Alice", 1000)
    manager.add_account("Bob", 500)

    results: Dict[str, Any] = {}

    results['deposit_alice'] = manager.deposit("Alice", 200)
    out(f"Depositing 200 to Alice: {results['deposit_alice']}")
    results['alice_balance'] = manager.get_balance("Alice")
    out(f"Alice's balance: {results['alice_balance']}")

    results['withdraw_bob'] = manager.withdraw("Bob", 300)
    out(f"Withdrawing 300 from Bob: {results['withdraw_bob']}")
    results['bob_balance'] = manager.get_balance("Bob")
    out(f"Bob's balance: {results['bob_balance']}")

    results['loan_alice'] = manager.approve_loan("Alice", 400)
    out(f"Approving a loan of 400 for Alice: {results['loan_alice']}")
    results['alice_loan'] = manager.get_loan("Alice")
    out(f"Alice's loan: {results['alice_loan']}")

    results['repay_alice'] = manager.repay_loan("Alice", 200)
    out(f"Repaying 200 of Alice's loan: {results['repay_alice']}")
    results['alice_remaining_loan'] = manager.get_loan("Alice")
    out(f"Alice's remaining loan: {results['alice_remaining_loan']}")

    results['total_account_balances'] = manager.get_total_account_balances()
    out(f"Total account balances: {results['total_account_balances']}")

    results['total_deposits'] = manager.get_total_deposits()
    out(f"Total deposits in the bank: {results['total_deposits']}")

    return results
