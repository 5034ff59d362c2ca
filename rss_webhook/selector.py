"""
Delivery-set selection.

Decides which items of a feed are new relative to its stored watermark,
and in which order they go out.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from rss_webhook.models import DatedItem, RawItem
from rss_webhook.timestamps import parse_publish_date

logger = logging.getLogger(__name__)

# Items announced the first time a feed is seen
FIRST_RUN_LIMIT = 3


@dataclass(frozen=True)
class DeliverySet:
    """
    Ordered items to announce for one feed in one cycle.

    Attributes
    ----------
    items : tuple[DatedItem, ...]
        Items in ascending publish order.
    max_timestamp : datetime | None
        Newest publish time among the items, None when empty.
    """

    items: tuple[DatedItem, ...] = ()
    max_timestamp: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return not self.items

    def __len__(self) -> int:
        return len(self.items)


def date_items(items: Iterable[RawItem]) -> list[DatedItem]:
    """
    Pair items with their parsed publish date.

    Items without a parseable date are dropped; they are never eligible
    for delivery.

    Parameters
    ----------
    items : Iterable[RawItem]
        Items in feed-source order.

    Returns
    -------
    list[DatedItem]
        Datable items, still in feed-source order.
    """
    dated = []
    skipped = 0
    for item in items:
        published_at = parse_publish_date(item.published)
        if published_at is None:
            skipped += 1
            continue
        dated.append(DatedItem(item=item, published_at=published_at))

    if skipped:
        logger.debug("Skipped %d item(s) without a usable publish date", skipped)
    return dated


def _by_date(dated: DatedItem) -> datetime:
    return dated.published_at


def select_delivery(
    items: Iterable[DatedItem],
    watermark: datetime | None,
    first_run_limit: int = FIRST_RUN_LIMIT,
) -> DeliverySet:
    """
    Compute the ordered set of items to deliver.

    Without a watermark only the newest ``first_run_limit`` items are
    taken. With one, every item strictly newer than it is taken, uncapped.
    Items come out oldest first; equal timestamps keep feed-source order.

    Parameters
    ----------
    items : Iterable[DatedItem]
        Datable items in feed-source order.
    watermark : datetime | None
        Stored watermark, or None if the feed never delivered.
    first_run_limit : int
        Cap applied when there is no watermark.

    Returns
    -------
    DeliverySet
        Items to deliver and their newest timestamp.
    """
    if watermark is None:
        ordered = sorted(items, key=_by_date)
        selected = ordered[-first_run_limit:] if first_run_limit > 0 else []
    else:
        selected = sorted(
            (dated for dated in items if dated.published_at > watermark),
            key=_by_date,
        )

    if not selected:
        return DeliverySet()

    return DeliverySet(items=tuple(selected), max_timestamp=selected[-1].published_at)


def partition(
    items: Sequence[DatedItem], size: int
) -> list[tuple[DatedItem, ...]]:
    """
    Split an ordered delivery list into fixed-size batches.

    Raises
    ------
    ValueError
        If size is less than 1.
    """
    if size < 1:
        raise ValueError(f"Batch size must be at least 1, got {size}")
    return [tuple(items[i : i + size]) for i in range(0, len(items), size)]
