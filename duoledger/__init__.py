"""
Duo Ledger

A shared expense ledger for exactly two people.

Either participant records what they paid and how it should be split;
the ledger keeps a running balance of who owes whom and proposes the
settlement that brings it back to zero.
"""

__version__ = "0.1.0"
