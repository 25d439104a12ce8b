"""Akasia Operations Ledger - finance ledger and spending-task settlement core."""

__version__ = "0.1.0"
