"""
VoltLedger storage - hash-chained journal the ledger is rebuilt from.
"""

from voltledger.storage.journal import Journal, JournalEntry, JournalReport

__all__ = ["Journal", "JournalEntry", "JournalReport"]
