"""
Data model for feed items flowing through the delivery pipeline.

Raw items come fresh from the feed parser on every poll; dated items pair
them with their parsed publish timestamp; announcements are the sanitized,
owned text handed to a notifier.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class RawItem:
    """
    One entry from a parsed feed.

    Attributes
    ----------
    title : str | None
        Entry title.
    link : str | None
        Entry URL.
    description : str | None
        Free text summary, possibly containing markup.
    published : str | None
        Feed-supplied publication date string, unparsed.
    """

    title: str | None = None
    link: str | None = None
    description: str | None = None
    published: str | None = None

    @classmethod
    def from_feedparser(cls, entry: Any) -> "RawItem":
        """
        Create a RawItem from a feedparser entry.

        Parameters
        ----------
        entry : Any
            A feedparser entry object.

        Returns
        -------
        RawItem
            Item with the fields the pipeline cares about.
        """
        # RSS <description> lands in summary; Atom may only carry content
        description = entry.get("summary") or None
        if description is None and entry.get("content"):
            description = entry.content[0].get("value") or None

        published = entry.get("published") or entry.get("updated") or None

        return cls(
            title=entry.get("title") or None,
            link=entry.get("link") or None,
            description=description,
            published=published,
        )


@dataclass(frozen=True)
class DatedItem:
    """A raw item whose publish date parsed successfully."""

    item: RawItem
    published_at: datetime


@dataclass
class ParsedFeed:
    """
    A fetched and parsed feed document.

    Attributes
    ----------
    title : str
        Channel-level title.
    items : list[RawItem]
        Entries in feed-source order.
    """

    title: str
    items: list[RawItem] = field(default_factory=list)


@dataclass(frozen=True)
class Announcement:
    """Sanitized, display-ready text for a single notification card."""

    title: str
    link: str
    description: str
    published_at: datetime
