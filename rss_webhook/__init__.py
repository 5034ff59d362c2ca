"""
RSS Webhook - Forward new RSS feed items to a Discord webhook.

Polls a fixed set of RSS/Atom feeds, detects entries published since the
last delivered one, and posts them as embeds, keeping a per-feed
watermark on disk across restarts.
"""

__version__ = "1.0.0"
