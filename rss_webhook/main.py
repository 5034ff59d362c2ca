"""
Main entry point for RSS Webhook.

Runs the poll loop that checks feeds and forwards new items to the webhook.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from urllib.parse import urlparse

import coloredlogs
import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from rss_webhook.config import AppConfig, load_config
from rss_webhook.dispatcher import CycleReport, FeedDispatcher
from rss_webhook.rss_parser import FeedParser
from rss_webhook.storage import WatermarkStore
from rss_webhook.webhook import DiscordWebhookNotifier, redact_webhook_url

logger = logging.getLogger(__name__)


def redact_proxy_url(proxy_url: str) -> str:
    """
    Redact credentials from a proxy URL for safe logging.

    Parameters
    ----------
    proxy_url : str
        The proxy URL potentially containing credentials.

    Returns
    -------
    str
        The proxy URL with any userinfo replaced by ``****``.
    """
    parsed = urlparse(proxy_url)
    if "@" not in parsed.netloc:
        return proxy_url
    host = parsed.netloc.rpartition("@")[2]
    return f"{parsed.scheme}://****@{host}{parsed.path}"


class RSSWebhook:
    """
    Main RSS webhook application.

    Owns the collaborators and runs one poll cycle per check interval.
    """

    def __init__(self, config: AppConfig):
        """
        Initialize the application.

        Parameters
        ----------
        config : AppConfig
            Validated configuration.
        """
        self.config = config
        self.store: WatermarkStore | None = None
        self.parser: FeedParser | None = None
        self.notifier: DiscordWebhookNotifier | None = None
        self.dispatcher: FeedDispatcher | None = None
        self._running = False
        self._stop_event = asyncio.Event()

    def _setup(self) -> FeedDispatcher:
        """Create collaborators and load persisted watermarks."""
        if self.dispatcher is not None:
            return self.dispatcher

        defaults = self.config.defaults

        proxy_url = defaults.proxy
        if proxy_url:
            logger.info("Using proxy: %s", redact_proxy_url(proxy_url))

        self.store = WatermarkStore(self.config.storage.state_path).load()

        self.parser = FeedParser(
            timeout=defaults.request_timeout,
            user_agent=defaults.user_agent,
            proxy_url=proxy_url,
        )

        self.notifier = DiscordWebhookNotifier(
            self.config.webhook,
            timeout=defaults.request_timeout,
            proxy_url=proxy_url,
        )

        self.dispatcher = FeedDispatcher(
            parser=self.parser,
            notifier=self.notifier,
            store=self.store,
            batch_size=defaults.batch_size,
            batch_delay=defaults.batch_delay,
            first_run_limit=defaults.first_run_limit,
            description_max_length=defaults.description_max_length,
        )
        return self.dispatcher

    async def run_once(self) -> CycleReport:
        """Run a single poll cycle over all configured feeds."""
        dispatcher = self._setup()
        report = await dispatcher.run_cycle(self.config.feeds)

        logger.info(
            "Cycle complete: %d feed(s) updated, %d failed",
            len(report.updated),
            len(report.failed),
        )
        return report

    async def start(self) -> None:
        """Run poll cycles until stopped."""
        logger.info("Starting RSS Webhook")
        logger.info(
            "Posting to %s every %d seconds",
            redact_webhook_url(self.config.webhook.url),
            self.config.defaults.check_interval,
        )
        for feed in self.config.feeds:
            logger.info("Monitoring feed: %s", feed.display_name)

        self._running = True
        self._stop_event.clear()

        while self._running:
            await self.run_once()

            # Wait for next cycle, waking early on stop
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self.config.defaults.check_interval,
                )
            except TimeoutError:
                pass

    async def stop(self) -> None:
        """Stop the poll loop and close collaborators."""
        logger.info("Stopping RSS Webhook")
        self._running = False
        self._stop_event.set()

        if self.parser:
            await self.parser.close()
        if self.notifier:
            await self.notifier.close()

        logger.info("RSS Webhook stopped")


def setup_logging(verbose: bool = False) -> None:
    """
    Configure application logging.

    Parameters
    ----------
    verbose : bool
        If True, set log level to DEBUG.
    """
    level = logging.DEBUG if verbose else logging.INFO

    coloredlogs.install(
        level=level,
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="RSS feed watcher posting new items to a Discord webhook",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to an optional YAML configuration file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single poll cycle and exit",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)
    load_dotenv()

    try:
        config = load_config(Path(args.config) if args.config else None)
    except (FileNotFoundError, ValueError, ValidationError, yaml.YAMLError) as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    app = RSSWebhook(config)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    if args.once:
        try:
            loop.run_until_complete(app.run_once())
        finally:
            loop.run_until_complete(app.stop())
            loop.close()
        return

    # Setup signal handlers for graceful shutdown
    def signal_handler():
        logger.info("Received shutdown signal")
        asyncio.ensure_future(app.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        loop.run_until_complete(app.start())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        loop.run_until_complete(app.stop())
        loop.close()


if __name__ == "__main__":
    main()
