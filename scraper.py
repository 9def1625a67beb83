# scraper.py
"""
Scraper and stream resolver for klon.fun.

Flow for one title:
- search(): POST the query to the site root and parse the listing cards
- load_content(): fetch the content page, read the player iframe and tags,
  classify movie vs series and, for a series, load the episode tree from
  the player page
- get_streaming_links(): fetch the player page again and resolve the
  selected movie or episode to an HLS source plus optional subtitle

Every step awaits the previous fetch; nothing is cached between calls.
"""
import json
import logging
import re
from typing import List, Optional, Union

from bs4 import BeautifulSoup
from httpx import AsyncClient, AsyncHTTPTransport, HTTPStatusError, RequestError
from pydantic import ValidationError

from config import (
    BASE_HEADERS,
    KLON_BASE_URL,
    KLON_RETRIES,
    KLON_TIMEOUT,
    MULTIVOICE_SUFFIX,
    STREAM_HEADERS,
    configure_logging,
)
from errors import ExtractionNotFound, FetchError, InvalidPayloadError, KlonError
from models import (
    ContentDetail,
    ContentKind,
    InvalidPayload,
    PlayerTree,
    SearchResult,
    Selection,
    Source,
    StreamResult,
)
from player import (
    FILE_TAG,
    classify,
    extract_payload,
    extract_subtitle,
    list_episode_links,
    normalize_tree,
    resolve_episode,
    resolve_movie,
)

configure_logging()
logger = logging.getLogger(__name__)


def create_http_client(transport=None) -> AsyncClient:
    if transport is None:
        transport = AsyncHTTPTransport(retries=KLON_RETRIES)
    return AsyncClient(
        transport=transport,
        headers=BASE_HEADERS,
        timeout=KLON_TIMEOUT,
        follow_redirects=True,
    )


# Dependency to provide HTTP client
async def get_http_client():
    client = create_http_client()
    try:
        yield client
    finally:
        await client.aclose()


async def fetch_text(client: AsyncClient, url: str, method: str = "GET", headers: Optional[dict] = None, data: Optional[dict] = None) -> str:
    """Fetch ``url`` and return the body. Request headers override the client defaults."""
    try:
        response = await client.request(method, url, headers=headers, data=data)
        response.raise_for_status()
    except HTTPStatusError as e:
        raise FetchError(url, e.response.status_code, e.response.reason_phrase) from e
    except RequestError as e:
        raise FetchError(url, None, str(e) or type(e).__name__) from e
    return response.text


def absolute_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    url = url.strip()
    if url.startswith("//"):
        return "https:" + url
    if url.startswith("/"):
        return KLON_BASE_URL + url
    if not url.startswith(("http://", "https://")):
        return KLON_BASE_URL + "/" + url.lstrip("/")
    return url


# Listing and detail pages

def parse_klon_search_results(html: str, log: logging.Logger = logger) -> List[SearchResult]:
    soup = BeautifulSoup(html, "html.parser")
    results = []
    for item in soup.select(".short-news__slide-item"):
        link_tag = item.select_one(".card-link__style")
        if not link_tag:
            continue
        title = link_tag.get_text(strip=True) or link_tag.get("title", "").strip()
        href = absolute_url(link_tag.get("href"))
        if not title or not href:
            log.debug(f"Skipping card with missing title or URL: {title!r}")
            continue

        poster_tag = item.select_one(".card-poster__img")
        poster_url = None
        if poster_tag:
            poster_url = absolute_url(poster_tag.get("data-src") or poster_tag.get("src"))

        try:
            results.append(SearchResult(title=title, href=href, poster_url=poster_url))
        except ValidationError as e:
            log.error(f"Failed to create SearchResult for {title}: {e}")
    return results


_YEAR_RE = re.compile(r"\b(19|20)\d{2}\b")


def _json_ld_objects(soup: BeautifulSoup, log: logging.Logger) -> List[dict]:
    objects = []
    for script in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(script.string or "")
        except json.JSONDecodeError as e:
            log.debug(f"Skipping unparsable JSON-LD block: {e}")
            continue
        items = data if isinstance(data, list) else [data]
        for item in items:
            if isinstance(item, dict):
                objects.append(item)
                graph = item.get("@graph")
                if isinstance(graph, list):
                    objects.extend(node for node in graph if isinstance(node, dict))
    return objects


def _image_url(value) -> Optional[str]:
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        value = value.get("url")
    return value if isinstance(value, str) else None


def _meta_content(soup: BeautifulSoup, prop: str) -> Optional[str]:
    tag = soup.find("meta", property=prop)
    content = tag.get("content") if tag else None
    return content.strip() if content else None


def parse_klon_detail_page(html: str, log: logging.Logger = logger) -> dict:
    """
    Read descriptive fields, tags and the player iframe from a content page.

    Returns a dict with keys title, poster_url, plot, year, tags and
    player_url; any of them may be None (tags is always a list).
    """
    soup = BeautifulSoup(html, "html.parser")

    ld = next((obj for obj in _json_ld_objects(soup, log) if obj.get("name")), {})

    title = ld.get("name")
    if not title:
        h1 = soup.find("h1")
        title = h1.get_text(strip=True) if h1 else _meta_content(soup, "og:title")

    poster_url = absolute_url(_image_url(ld.get("image")) or _meta_content(soup, "og:image"))
    plot = ld.get("description") or _meta_content(soup, "og:description")

    year = None
    for key in ("dateCreated", "datePublished"):
        value = ld.get(key)
        match = _YEAR_RE.search(str(value)) if value else None
        if match:
            year = int(match.group(0))
            break

    player_url = None
    iframe = soup.select_one("div.film-player iframe")
    if iframe:
        player_url = absolute_url(iframe.get("data-src") or iframe.get("src"))

    tags = []
    for link in soup.select(".table-info__link"):
        text = link.get_text(strip=True)
        if text and text not in tags:
            tags.append(text)

    return {
        "title": title.strip() if isinstance(title, str) else None,
        "poster_url": poster_url,
        "plot": plot.strip() if isinstance(plot, str) else None,
        "year": year,
        "tags": tags,
        "player_url": player_url,
    }


# Pipeline

async def search(query: str, client: AsyncClient, log: logging.Logger = logger) -> List[SearchResult]:
    """Search the catalog. Failures are logged and yield an empty list."""
    log.info(f"Searching for: {query}")
    form = {
        "do": "search",
        "subaction": "search",
        "story": re.sub(r"\s+", "+", query.strip()),
    }
    try:
        html = await fetch_text(
            client,
            KLON_BASE_URL,
            method="POST",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            data=form,
        )
    except FetchError as e:
        log.error(f"Search failed: {e}")
        return []

    results = parse_klon_search_results(html, log)
    log.info(f"Found {len(results)} search results.")
    return results


async def load_series_structure(player_url: str, client: AsyncClient, log: logging.Logger = logger) -> PlayerTree:
    """
    Fetch the player page and build the episode tree.

    A missing or unparsable playlist yields an empty tree so the title
    still loads; fetch failures propagate.
    """
    log.info(f"Loading series structure from player URL: {player_url}")
    html = await fetch_text(client, player_url)

    payload = extract_payload(html, FILE_TAG)
    if payload is None:
        log.warning(f"Failed to extract player JSON from {player_url}")
        return PlayerTree()

    tree = normalize_tree(payload, log)
    if isinstance(tree, InvalidPayload):
        log.warning(f"Player JSON at {player_url} is invalid ({tree.reason}), listing no episodes")
        return PlayerTree()
    return tree


async def load_content(url: str, client: AsyncClient, log: logging.Logger = logger) -> ContentDetail:
    log.info(f"Loading content from: {url}")
    html = await fetch_text(client, url)
    fields = parse_klon_detail_page(html, log)

    player_url = fields["player_url"]
    if not player_url:
        log.error(f"Player URL not found on {url}")
        raise ExtractionNotFound("player")

    title = fields["title"] or url
    common = dict(
        title=title,
        url=url,
        poster_url=fields["poster_url"],
        plot=fields["plot"],
        year=fields["year"],
        tags=fields["tags"],
        player_url=player_url,
    )

    if classify(player_url, fields["tags"]) is ContentKind.SERIES:
        tree = await load_series_structure(player_url, client, log)
        links = list_episode_links(tree, player_url)
        log.info(f"Loaded series '{title}': {len(tree.dubs)} dubs, {len(links)} episodes")
        return ContentDetail(**common, is_movie=False, episodes=list(tree.dubs), links=links)

    log.info(f"Loaded movie '{title}'")
    return ContentDetail(**common, is_movie=True, data=[title, player_url])


async def get_streaming_links(data: Union[str, List[str]], client: AsyncClient, log: logging.Logger = logger) -> StreamResult:
    """
    Resolve a serialized selection to one HLS source and zero or one subtitle.

    ``data`` is [title, player_url] for a movie or
    [season_title, episode_title, player_url] for a series episode.
    """
    log.info(f"Getting streaming links for: {data}")
    selection = Selection.from_data(data)
    player_url = selection.player_url.replace(MULTIVOICE_SUFFIX, "")

    try:
        html = await fetch_text(client, player_url)

        if selection.is_sole:
            media_url = resolve_movie(html)
        else:
            payload = extract_payload(html, FILE_TAG)
            if payload is None:
                raise ExtractionNotFound(FILE_TAG)
            tree = normalize_tree(payload, log)
            if isinstance(tree, InvalidPayload):
                raise InvalidPayloadError(tree.reason)
            media_url = resolve_episode(tree, selection.season_title, selection.episode_title)
    except KlonError as e:
        log.error(f"Stream resolution failed for {player_url}: {e}")
        raise

    subtitle = extract_subtitle(html, log)

    source = Source(url=media_url, headers=dict(STREAM_HEADERS))
    return StreamResult(sources=[source], subtitles=[subtitle] if subtitle else [])
