"""
StorySnap Backend — Feed Filtering Helpers
============================================

What:  Text search and tag filtering over an already-fetched list of stories.
Why:   The feed query only filters by status and author. Search and tag
       selection run over the full result set, exactly as the feed page does,
       so the SQL query and its indexes stay simple.

Matching rules:
    - search: case-insensitive substring of title OR location; empty matches all,
              whitespace is part of the needle
    - tag:    exact, case-sensitive membership in the story's tags; None matches all
"""

from typing import Iterable, List, Optional, Sequence, TypeVar

T = TypeVar("T")


def matches_search(story, search: str) -> bool:
    needle = (search or "").lower()
    if not needle:
        return True
    title = (getattr(story, "title", "") or "").lower()
    location = (getattr(story, "location", "") or "").lower()
    return needle in title or needle in location


def matches_tag(story, tag: Optional[str]) -> bool:
    if not tag:
        return True
    return tag in (getattr(story, "tags", None) or [])


def filter_stories(stories: Sequence[T], search: str = "", tag: Optional[str] = None) -> List[T]:
    """Apply search and tag filters, preserving the incoming order."""
    return [s for s in stories if matches_search(s, search) and matches_tag(s, tag)]


def collect_tags(stories: Iterable) -> List[str]:
    """Sorted unique tags across stories, used to populate the tag picker."""
    tags = set()
    for story in stories:
        tags.update(getattr(story, "tags", None) or [])
    return sorted(tags)
