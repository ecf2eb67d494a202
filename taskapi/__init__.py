"""
Task API - a multi-user task manager over a document store.

Users register and authenticate with bearer tokens, then manage their own
tasks. Admins may act on any single task; listing and statistics are
always scoped to the caller.
"""

__version__ = "0.1.0"
