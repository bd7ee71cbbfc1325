"""ASA donation panel core: pantry ledger, basket recipe and basket assembly."""

__version__ = "0.1.0"
