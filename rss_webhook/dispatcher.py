"""
Batching and dispatch of new feed items.

Turns a feed's delivery set into webhook batches, advances the feed's
watermark as batches are confirmed, and runs whole poll cycles with
per-feed error isolation.
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from rss_webhook.config import FeedConfig
from rss_webhook.models import Announcement, DatedItem
from rss_webhook.notifier import NotificationError, Notifier
from rss_webhook.rss_parser import FeedParser
from rss_webhook.sanitizer import MAX_DESCRIPTION_LENGTH, fit_text, sanitize_text
from rss_webhook.selector import FIRST_RUN_LIMIT, date_items, partition, select_delivery
from rss_webhook.storage import WatermarkStore

logger = logging.getLogger(__name__)

BATCH_SIZE = 10
BATCH_DELAY_SECONDS = 1.0

# Embed title limit
MAX_TITLE_LENGTH = 256

NO_TITLE = "No Title"
NO_DESCRIPTION = "No description"


class DeliveryError(Exception):
    """
    Raised when a feed's batches could not all be delivered.

    Progress made by earlier batches is already recorded in the store.

    Attributes
    ----------
    feed_url : str
        Feed whose delivery stopped.
    delivered : int
        Items confirmed delivered before the failure.
    pending : int
        Items left undelivered this cycle.
    """

    def __init__(self, feed_url: str, delivered: int, pending: int):
        self.feed_url = feed_url
        self.delivered = delivered
        self.pending = pending
        super().__init__(
            f"Delivery to webhook failed for {feed_url}: "
            f"{delivered} item(s) sent, {pending} pending"
        )


@dataclass
class CycleReport:
    """Outcome of one pass over all feeds."""

    updated: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    saved: bool = False


def build_announcement(
    dated: DatedItem,
    description_max_length: int = MAX_DESCRIPTION_LENGTH,
) -> Announcement:
    """
    Sanitize an item's text for display.

    Parameters
    ----------
    dated : DatedItem
        Item to announce.
    description_max_length : int
        Characters of description kept before truncation.

    Returns
    -------
    Announcement
        Display-ready text.
    """
    item = dated.item

    title = fit_text(item.title or "", MAX_TITLE_LENGTH) or NO_TITLE
    description = (
        sanitize_text(item.description or "", description_max_length)
        or NO_DESCRIPTION
    )

    return Announcement(
        title=title,
        link=(item.link or "").strip(),
        description=description,
        published_at=dated.published_at,
    )


class FeedDispatcher:
    """
    Delivers new items of each feed and tracks watermarks.

    Feeds are processed one at a time; the store is only touched from
    here, so no locking is needed.
    """

    def __init__(
        self,
        parser: FeedParser,
        notifier: Notifier,
        store: WatermarkStore,
        batch_size: int = BATCH_SIZE,
        batch_delay: float = BATCH_DELAY_SECONDS,
        first_run_limit: int = FIRST_RUN_LIMIT,
        description_max_length: int = MAX_DESCRIPTION_LENGTH,
    ):
        """
        Initialize the dispatcher.

        Parameters
        ----------
        parser : FeedParser
            Fetches and parses feeds.
        notifier : Notifier
            Delivers batches.
        store : WatermarkStore
            Per-feed watermarks, already loaded.
        batch_size : int
            Maximum items per notifier call.
        batch_delay : float
            Seconds to wait between consecutive batches.
        first_run_limit : int
            Items announced for a feed without a watermark.
        description_max_length : int
            Characters of description kept before truncation.
        """
        if batch_size < 1:
            raise ValueError(f"Batch size must be at least 1, got {batch_size}")

        self.parser = parser
        self.notifier = notifier
        self.store = store
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.first_run_limit = first_run_limit
        self.description_max_length = description_max_length
        # Set once a batch went out, so the next one is paced
        self._dispatched = False

    async def process_feed(self, feed: FeedConfig) -> bool:
        """
        Deliver a feed's new items and advance its watermark.

        Parameters
        ----------
        feed : FeedConfig
            Feed to process.

        Returns
        -------
        bool
            True if at least one batch was delivered.

        Raises
        ------
        aiohttp.ClientError
            If the feed could not be fetched.
        FeedParseError
            If the feed document is invalid.
        DeliveryError
            If a batch was rejected; earlier batches stay committed.
        """
        parsed = await self.parser.fetch_feed(feed)
        watermark = self.store.get(feed.url)

        delivery = select_delivery(
            date_items(parsed.items),
            watermark,
            self.first_run_limit,
        )

        if delivery.is_empty:
            logger.debug("No new entries in '%s'", feed.display_name)
            return False

        logger.info(
            "Found %d new entr%s in '%s'%s",
            len(delivery),
            "y" if len(delivery) == 1 else "ies",
            feed.display_name,
            "" if watermark is not None else " (first run)",
        )

        batches = partition(delivery.items, self.batch_size)
        current_max = watermark
        delivered = 0

        for batch in batches:
            if self._dispatched and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)
            self._dispatched = True

            announcements = [
                build_announcement(dated, self.description_max_length)
                for dated in batch
            ]

            try:
                await self.notifier.send_batch(announcements, parsed.title, feed.color)
            except NotificationError as e:
                self._commit(feed, watermark, current_max)
                raise DeliveryError(
                    feed.url,
                    delivered=delivered,
                    pending=len(delivery) - delivered,
                ) from e

            delivered += len(batch)
            batch_max = batch[-1].published_at
            if current_max is None or batch_max > current_max:
                current_max = batch_max

        self._commit(feed, watermark, current_max)
        return True

    def _commit(
        self,
        feed: FeedConfig,
        previous: datetime | None,
        current_max: datetime | None,
    ) -> None:
        """Record progress, never moving a watermark backwards."""
        if current_max is None:
            return
        if previous is not None and current_max <= previous:
            return
        self.store.set(feed.url, current_max)
        logger.debug(
            "Watermark for '%s' advanced to %s",
            feed.display_name,
            current_max.isoformat(),
        )

    async def run_cycle(self, feeds: Iterable[FeedConfig]) -> CycleReport:
        """
        Process every feed once, then persist changed watermarks.

        A failure in one feed is logged and does not affect the others.

        Parameters
        ----------
        feeds : Iterable[FeedConfig]
            Feeds to process, in order.

        Returns
        -------
        CycleReport
            Which feeds updated or failed, and whether state was saved.
        """
        report = CycleReport()
        self._dispatched = False

        for feed in feeds:
            try:
                if await self.process_feed(feed):
                    report.updated.append(feed.url)
            except asyncio.CancelledError:
                raise
            except DeliveryError as e:
                report.failed.append(feed.url)
                if e.delivered:
                    report.updated.append(feed.url)
                logger.error("%s (%s)", e, e.__cause__)
            except Exception as e:
                report.failed.append(feed.url)
                logger.error("Error processing %s: %s", feed.url, e)

        if self.store.dirty:
            report.saved = self.store.save()

        return report
