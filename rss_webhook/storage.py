"""
JSON file storage for per-feed delivery watermarks.

Persists the publish time of the most recently delivered item for each
feed so restarts neither re-announce old items nor miss new ones.
"""

import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_serializer, field_validator

from rss_webhook.timestamps import format_watermark, parse_watermark

logger = logging.getLogger(__name__)


class AppState(BaseModel):
    """
    Serialized form of the watermark store.

    Attributes
    ----------
    last_seen : dict[str, datetime]
        Feed URL to the publish time of the last delivered item.
    """

    last_seen: dict[str, datetime] = Field(default_factory=dict)

    @field_validator("last_seen", mode="before")
    @classmethod
    def parse_timestamps(cls, v: object) -> object:
        """Parse persisted strings, requiring an explicit offset."""
        if not isinstance(v, dict):
            return v
        parsed = {}
        for key, value in v.items():
            if isinstance(value, datetime):
                parsed[key] = value
            elif isinstance(value, str):
                parsed[key] = parse_watermark(value)
            else:
                # numbers would otherwise coerce to epoch timestamps
                raise ValueError(
                    f"Watermark for '{key}' must be a timestamp string"
                )
        return parsed

    @field_validator("last_seen")
    @classmethod
    def check_offset_aware(cls, v: dict[str, datetime]) -> dict[str, datetime]:
        """Reject naive timestamps; they do not compare with feed dates."""
        for key, value in v.items():
            if value.tzinfo is None:
                raise ValueError(f"Watermark for '{key}' has no UTC offset")
        return v

    @field_serializer("last_seen")
    def serialize_timestamps(self, v: dict[str, datetime]) -> dict[str, str]:
        """Write timestamps as RFC 3339 strings."""
        return {key: format_watermark(value) for key, value in v.items()}


class WatermarkStore:
    """
    Durable mapping from feed URL to its delivery watermark.

    Reads never fail: a missing or corrupt state file yields an empty
    store. Writes are best-effort and report failure instead of raising.
    """

    def __init__(self, state_path: str | Path):
        """
        Initialize storage with the state file path.

        Parameters
        ----------
        state_path : str | Path
            Path to the JSON state file.
        """
        self.state_path = Path(state_path)
        self._state = AppState()
        self._dirty = False

    @property
    def dirty(self) -> bool:
        """True if a watermark changed since the last load or save."""
        return self._dirty

    def load(self) -> "WatermarkStore":
        """
        Read watermarks from disk, replacing the in-memory mapping.

        Returns
        -------
        WatermarkStore
            This store, for chaining.
        """
        self._state = AppState()
        self._dirty = False

        try:
            data = self.state_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No state file at %s, starting empty", self.state_path)
            return self
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read state file %s: %s", self.state_path, e)
            return self

        try:
            self._state = AppState.model_validate_json(data)
        except (ValidationError, ValueError) as e:
            logger.warning(
                "Ignoring corrupt state file %s: %s",
                self.state_path,
                e,
            )
            return self

        logger.info(
            "Loaded %d watermark(s) from %s",
            len(self._state.last_seen),
            self.state_path,
        )
        return self

    def save(self) -> bool:
        """
        Write watermarks to disk atomically.

        Returns
        -------
        bool
            True if the state file was written.
        """
        payload = self._state.model_dump_json(indent=2)

        try:
            self.state_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.state_path.parent,
                prefix=f".{self.state_path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self.state_path)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error("Failed to save state to %s: %s", self.state_path, e)
            return False

        self._dirty = False
        logger.debug("Saved %d watermark(s)", len(self._state.last_seen))
        return True

    def get(self, feed_id: str) -> datetime | None:
        """
        Get the watermark for a feed.

        Parameters
        ----------
        feed_id : str
            Feed URL.

        Returns
        -------
        datetime | None
            Watermark, or None if nothing was ever delivered for the feed.
        """
        return self._state.last_seen.get(feed_id)

    def set(self, feed_id: str, watermark: datetime) -> None:
        """
        Overwrite the watermark for a feed.

        Monotonicity is the caller's concern.

        Parameters
        ----------
        feed_id : str
            Feed URL.
        watermark : datetime
            Offset-aware timestamp.
        """
        if watermark.tzinfo is None:
            raise ValueError("Watermark must be timezone-aware")

        if self._state.last_seen.get(feed_id) == watermark:
            return

        self._state.last_seen[feed_id] = watermark
        self._dirty = True
        logger.debug("Watermark for %s set to %s", feed_id, watermark.isoformat())

    def items(self) -> list[tuple[str, datetime]]:
        """Return (feed_id, watermark) pairs."""
        return list(self._state.last_seen.items())

    def __len__(self) -> int:
        return len(self._state.last_seen)

    def __contains__(self, feed_id: object) -> bool:
        return feed_id in self._state.last_seen
