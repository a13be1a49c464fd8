"""
Settle App - Commit-Reveal Trade Settlement Client

Client-side orchestration of a two-phase commit-reveal trade protocol
against a smart-contract ledger: gas admission, trade-hash commitment,
one-block advance, reveal, and receipt-log settlement accounting.
"""

__version__ = "0.1.0"
__author__ = "Settle Team"
