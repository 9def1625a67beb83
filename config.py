# config.py
"""
Process-wide settings for the klon.fun resolver.

Values are read once at import time; each one can be overridden through an
environment variable of the same name.
"""
import logging
import os

# Base URL of the catalog site (search is POSTed here)
KLON_BASE_URL = os.getenv("KLON_BASE_URL", "https://klon.fun").rstrip("/")

# Per-call timeout in seconds and connection retries for the HTTP transport
KLON_TIMEOUT = float(os.getenv("KLON_TIMEOUT", "10"))
KLON_RETRIES = int(os.getenv("KLON_RETRIES", "3"))

# The media host rejects requests without this referer
KLON_STREAM_REFERER = os.getenv("KLON_STREAM_REFERER", "https://tortuga.wtf/")

KLON_LOG_LEVEL = os.getenv("KLON_LOG_LEVEL", "INFO").upper()

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"

BASE_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "uk-UA,uk;q=0.9,en-US;q=0.5,en;q=0.3",
}

STREAM_HEADERS = {
    "Accept": "application/vnd.apple.mpegurl, video/mp4, */*",
    "Referer": KLON_STREAM_REFERER,
    "User-Agent": USER_AGENT,
}

# Markers that identify a multi-episode title
SERIES_PATH_MARKER = "/serial/"
SERIES_TAGS = frozenset({"Серіали", "Мультсеріали"})

# Stripped from the player URL before resolving streams
MULTIVOICE_SUFFIX = "?multivoice"


def configure_logging() -> None:
    logging.basicConfig(level=getattr(logging, KLON_LOG_LEVEL, logging.INFO))
