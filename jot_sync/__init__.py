"""
jot-sync - three-way task reconciliation between a to-do list, daily notes
and a persisted JSON state store.
"""

__version__ = "1.0.0"
