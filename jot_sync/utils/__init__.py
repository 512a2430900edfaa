"""
Utility functions for jot-sync.
"""

from .io import file_lock, read_text, load_json, atomic_write, atomic_write_json
from .date import parse_date, format_date, is_date_section
from .tags import normalize_tags, merge_tags, tags_differ

__all__ = [
    # I/O utilities
    'file_lock',
    'read_text',
    'load_json',
    'atomic_write',
    'atomic_write_json',
    # Date utilities
    'parse_date',
    'format_date',
    'is_date_section',
    # Tag utilities
    'normalize_tags',
    'merge_tags',
    'tags_differ',
]
