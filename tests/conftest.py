"""
Shared fixtures for RSS Webhook tests.

Provides common test fixtures for use across all test modules.
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from rss_webhook.config import AppConfig, FeedConfig, WebhookConfig
from rss_webhook.models import ParsedFeed
from rss_webhook.storage import WatermarkStore

from tests.factories import WEBHOOK_URL


# Path to test fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def sample_rss_content(fixtures_dir: Path) -> bytes:
    """Return contents of sample RSS feed."""
    return (fixtures_dir / "sample_rss.xml").read_bytes()


@pytest.fixture
def sample_atom_content(fixtures_dir: Path) -> bytes:
    """Return contents of sample Atom feed."""
    return (fixtures_dir / "sample_atom.xml").read_bytes()


@pytest.fixture
def sample_config_path(fixtures_dir: Path) -> Path:
    """Return path to sample config file."""
    return fixtures_dir / "sample_config.yaml"


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove environment overrides that would leak into config loading."""
    for name in ("DISCORD_WEBHOOK_URL", "CHECK_INTERVAL_SECONDS", "STATE_FILE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def webhook_config() -> WebhookConfig:
    """Create a minimal valid webhook configuration."""
    return WebhookConfig(url=WEBHOOK_URL)


@pytest.fixture
def feed_config() -> FeedConfig:
    """Create a minimal valid feed configuration."""
    return FeedConfig(
        url="https://example.com/feed.xml",
        color=1791981,
        name="Test Feed",
    )


@pytest.fixture
def other_feed_config() -> FeedConfig:
    """Create a second feed configuration."""
    return FeedConfig(url="https://example.com/other.xml", color=13438481)


@pytest.fixture
def minimal_app_config(
    webhook_config: WebhookConfig, feed_config: FeedConfig
) -> AppConfig:
    """Create a minimal valid app configuration."""
    return AppConfig(webhook=webhook_config, feeds=[feed_config])


@pytest.fixture
def store(tmp_path: Path) -> WatermarkStore:
    """
    Create an empty watermark store backed by a temporary file.

    Returns
    -------
    WatermarkStore
        A loaded, empty store.
    """
    return WatermarkStore(tmp_path / "state.json").load()


@pytest.fixture
def mock_parser() -> MagicMock:
    """
    Create a mock feed parser returning an empty feed.

    Returns
    -------
    MagicMock
        A parser whose fetch_feed is an AsyncMock.
    """
    parser = MagicMock()
    parser.fetch_feed = AsyncMock(return_value=ParsedFeed(title="Test Feed", items=[]))
    parser.close = AsyncMock()
    return parser


@pytest.fixture
def mock_notifier() -> MagicMock:
    """
    Create a mock notifier that accepts every batch.

    Returns
    -------
    MagicMock
        A notifier whose send_batch is an AsyncMock.
    """
    notifier = MagicMock()
    notifier.send_batch = AsyncMock(return_value=None)
    notifier.close = AsyncMock()
    return notifier
