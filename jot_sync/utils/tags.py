"""
Utilities for comparing and merging task tags.

Tags are held without the leading ``#``. They are compared as sets and
persisted as sorted lists so output is deterministic.
"""

from typing import Iterable, List, Optional


def normalize_tag(tag: str) -> str:
    return tag.strip().lstrip('#')


def normalize_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Deduplicate and sort a tag collection."""
    if not tags:
        return []
    return sorted({normalize_tag(tag) for tag in tags if tag and normalize_tag(tag)})


def tags_differ(left: Optional[Iterable[str]], right: Optional[Iterable[str]]) -> bool:
    """Check if two tag collections differ, ignoring order and duplicates."""
    return set(normalize_tags(left)) != set(normalize_tags(right))


def merge_tags(first: Optional[Iterable[str]], second: Optional[Iterable[str]]) -> List[str]:
    """
    Merge tags from both sources.
    
    Args:
        first: Tags from one source
        second: Tags from the other source
        
    Returns:
        Sorted union with duplicates removed
    """
    return normalize_tags(list(first or []) + list(second or []))
