"""
VoltLedger core - models, registry, ledger and event feed.
"""
