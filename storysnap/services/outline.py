"""
StorySnap Backend — Story Outline (table of contents + reading time)
======================================================================

What:  Derives the reader sidebar for a story from its markdown body.
How:   Headings of level 1-3 (`#`, `##`, `###` at line start) become TOC
       entries. Each entry's id is the anchor slug the renderer puts on the
       heading element, so the links line up with the rendered page.

The same functions work on a translated body, which is why they take raw
markdown rather than a Story.
"""

import math
import re
from typing import List

from storysnap.schemas.story import TocItem

HEADING_RE = re.compile(r"^(#{1,3})\s+(.+)$", re.MULTILINE)

# Runs of anything that is not a letter or digit. \w minus underscore keeps
# non-Latin letters (e.g. "Κνωσός") intact.
_NON_ALNUM_RE = re.compile(r"[\W_]+", re.UNICODE)

WORDS_PER_MINUTE = 200


def heading_slug(text: str) -> str:
    """
    Anchor id for a heading.

    >>> heading_slug("The Old Harbour (1850s)")
    'the-old-harbour-1850s-'
    """
    return _NON_ALNUM_RE.sub("-", text.lower().strip())


def table_of_contents(markdown: str) -> List[TocItem]:
    if not markdown:
        return []
    toc = []
    for match in HEADING_RE.finditer(markdown):
        text = match.group(2).strip()
        toc.append(TocItem(id=heading_slug(text), text=text, level=len(match.group(1))))
    return toc


def reading_time_minutes(markdown: str) -> int:
    """Whole minutes at 200 words per minute, rounded up."""
    if not markdown:
        return 0
    words = markdown.split()
    return math.ceil(len(words) / WORDS_PER_MINUTE)
