"""Daily note (journal entry) module."""

from .daily_notes import DailyNoteManager

__all__ = ['DailyNoteManager']
