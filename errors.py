# errors.py
from typing import Optional


class KlonError(Exception):
    """Base class for every failure raised while resolving a title."""


class FetchError(KlonError):
    """Transport or HTTP failure. status_code is None when no response arrived."""

    def __init__(self, url: str, status_code: Optional[int], reason: str):
        self.url = url
        self.status_code = status_code
        self.reason = reason
        if status_code is None:
            super().__init__(f"Request to {url} failed: {reason}")
        else:
            super().__init__(f"HTTP {status_code}: {reason} ({url})")


class ExtractionNotFound(KlonError):
    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(f"No '{tag}' payload found in page")


class InvalidPayloadError(KlonError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid player payload: {reason}")


class SelectionNotFound(KlonError):
    def __init__(self, season_title: str, episode_title: str):
        self.season_title = season_title
        self.episode_title = episode_title
        super().__init__(f"Episode file not found for S: {season_title}, E: {episode_title}")


class InvalidSelection(KlonError, ValueError):
    pass
