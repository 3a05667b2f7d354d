"""Bulk-remove Gmail messages from a single sender"""

__version__ = "0.1.0"
