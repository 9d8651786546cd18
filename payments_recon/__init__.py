"""payments-recon: ingest clinical payment exports and reconcile applied balances."""

__version__ = "0.1.0"
