# player.py
"""
Parsing of the embedded player page served by klon.fun.

The player page is not parsed as HTML. Its inline script assigns the
playlist and the subtitle track as string literals, e.g.

    file: '[{"title":"UA","folder":[...]}]',
    subtitle: "[Ukrainian]https://cdn/sub.vtt",

For a movie the ``file`` literal is the media URL itself; for a series it
is a JSON playlist of dubs, each holding seasons, each holding episodes.

Functions here do no I/O. They either return a value, return ``None`` /
an ``InvalidPayload`` for expected absences, or raise the errors the
orchestrator surfaces to callers.
"""
import json
import logging
import re
from typing import Any, Iterable, List, Optional, Set

from config import SERIES_PATH_MARKER, SERIES_TAGS
from errors import ExtractionNotFound, SelectionNotFound
from models import (
    ContentKind,
    Dub,
    Episode,
    EpisodeLink,
    InvalidPayload,
    PlayerTree,
    Season,
    Subtitle,
    TreeResult,
)

logger = logging.getLogger(__name__)

FILE_TAG = "file"
SUBTITLE_TAG = "subtitle"

# <tag> : <quote> ... <same quote>; backslash-escaped quotes stay inside the capture
_PAYLOAD_TEMPLATE = r'\b{tag}\s*:\s*(["\'])((?:\\.|(?!\1)[^\\])*)\1'

_PATTERNS = {}


def _payload_pattern(tag: str) -> "re.Pattern[str]":
    pattern = _PATTERNS.get(tag)
    if pattern is None:
        pattern = re.compile(_PAYLOAD_TEMPLATE.format(tag=re.escape(tag)), re.DOTALL)
        _PATTERNS[tag] = pattern
    return pattern


def extract_payload(text: str, tag: str) -> Optional[str]:
    """Return the first literal assigned to ``tag`` in ``text``, verbatim, or None."""
    if not text:
        return None
    match = _payload_pattern(tag).search(text)
    if not match:
        return None
    return match.group(2)


# Tree normalization

def _text_field(node: dict, key: str) -> Optional[str]:
    value = node.get(key)
    if isinstance(value, str) and value:
        return value
    return None


def _children(node: dict) -> list:
    folder = node.get("folder")
    return folder if isinstance(folder, list) else []


def _normalize_episode(node: Any, log: logging.Logger) -> Optional[Episode]:
    if not isinstance(node, dict):
        log.debug(f"Dropping non-object episode node: {node!r}")
        return None
    title = _text_field(node, "title")
    file = _text_field(node, "file")
    if not title or not file:
        log.debug(f"Dropping episode without title or file: {node.get('title')!r}")
        return None
    return Episode(
        title=title,
        file=file,
        id=_text_field(node, "id"),
        poster=_text_field(node, "poster"),
        subtitle=_text_field(node, "subtitle"),
    )


def _normalize_season(node: Any, log: logging.Logger) -> Optional[Season]:
    if not isinstance(node, dict):
        log.debug(f"Dropping non-object season node: {node!r}")
        return None
    title = _text_field(node, "title")
    if not title:
        log.debug("Dropping season without title")
        return None
    episodes = [ep for ep in (_normalize_episode(child, log) for child in _children(node)) if ep]
    return Season(title=title, episodes=tuple(episodes))


def _normalize_dub(node: Any, log: logging.Logger) -> Optional[Dub]:
    if not isinstance(node, dict):
        log.debug(f"Dropping non-object dub node: {node!r}")
        return None
    title = _text_field(node, "title")
    if not title:
        log.debug("Dropping dub without title")
        return None
    seasons = [s for s in (_normalize_season(child, log) for child in _children(node)) if s]
    return Dub(title=title, seasons=tuple(seasons))


def normalize_tree(payload: Optional[str], log: logging.Logger = logger) -> TreeResult:
    """
    Build the Dub → Season → Episode tree from a ``file`` payload.

    A single trailing comma is tolerated. Nodes missing a required field are
    dropped, so a partial tree is a valid result. Returns ``InvalidPayload``
    when the literal is empty or cannot be deserialized as a list.
    """
    raw = (payload or "").strip()
    if raw.endswith(","):
        raw = raw[:-1].rstrip()
    if not raw:
        return InvalidPayload(reason="empty payload")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        log.warning(f"Failed to parse player JSON: {e}")
        return InvalidPayload(reason=f"malformed JSON: {e.msg} at position {e.pos}")
    except (ValueError, RecursionError) as e:
        # oversized integer literals and runaway nesting
        log.warning(f"Failed to parse player JSON: {type(e).__name__}: {e}")
        return InvalidPayload(reason=f"unparsable JSON: {type(e).__name__}")

    if not isinstance(data, list):
        log.warning(f"Player JSON is a {type(data).__name__}, expected a list of dubs")
        return InvalidPayload(reason=f"expected a list of dubs, got {type(data).__name__}")

    dubs = [d for d in (_normalize_dub(node, log) for node in data) if d]
    return PlayerTree(dubs=tuple(dubs))


# Classification

def classify(player_url: str, tags: Iterable[str]) -> ContentKind:
    tag_set: Set[str] = set(tags or ())
    if SERIES_PATH_MARKER in (player_url or "") or tag_set & SERIES_TAGS:
        return ContentKind.SERIES
    return ContentKind.MOVIE


# Resolution

def resolve_movie(text: str) -> str:
    """The ``file`` literal of a movie player page is the media URL."""
    media_url = extract_payload(text, FILE_TAG)
    if not media_url:
        raise ExtractionNotFound(FILE_TAG)
    return media_url


def resolve_episode(tree: PlayerTree, season_title: str, episode_title: str) -> str:
    """
    Return the file of the first episode matching both titles.

    Dubs are scanned in order; within a dub, seasons and then episodes are
    matched by exact title. Duplicate season titles are legal and the first
    match wins.
    """
    for dub in tree.dubs:
        for season in dub.seasons:
            if season.title != season_title:
                continue
            for episode in season.episodes:
                if episode.title == episode_title:
                    return episode.file
    raise SelectionNotFound(season_title, episode_title)


def extract_subtitle(text: str, log: logging.Logger = logger) -> Optional[Subtitle]:
    """Decode a ``subtitle: '[Label]url'`` literal. Returns None when absent."""
    raw = extract_payload(text, SUBTITLE_TAG)
    if raw is None:
        return None

    if "]" not in raw:
        url = raw.strip()
        label = "Unknown"
    else:
        head, url = raw.split("]", 1)
        label = head.rsplit("[", 1)[-1].strip()
        url = url.strip()

    if not url:
        log.warning(f"Subtitle '{raw}' has no URL, skipping")
        return None
    return Subtitle(language=label, url=url)


_NUMBER_RE = re.compile(r"\d+")


def _first_number(title: str) -> Optional[int]:
    match = _NUMBER_RE.search(title)
    return int(match.group(0)) if match else None


def list_episode_links(tree: PlayerTree, player_url: str) -> List[EpisodeLink]:
    """One entry per distinct (season, episode) title pair, in dub-major order."""
    links = []
    seen = set()
    for dub in tree.dubs:
        for season in dub.seasons:
            for episode in season.episodes:
                key = (season.title, episode.title)
                if key in seen:
                    continue
                seen.add(key)
                links.append(EpisodeLink(
                    dub=dub.title,
                    season=season.title,
                    episode=episode.title,
                    season_number=_first_number(season.title),
                    episode_number=_first_number(episode.title),
                    data=[season.title, episode.title, player_url],
                ))
    return links
