"""
Simple Banking Application

Accounts with balances and loans, a bank-wide pool of total deposits,
and a hash-chained audit trail. All money handled as Decimal.
"""

__version__ = "1.0.0"
