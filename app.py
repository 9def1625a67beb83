#  app.py
import logging
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Query
from httpx import AsyncClient

from errors import (
    ExtractionNotFound,
    FetchError,
    InvalidPayloadError,
    InvalidSelection,
    KlonError,
    SelectionNotFound,
)
from models import ContentDetail, ErrorResponse, SearchResult, StreamRequest, StreamResult
from scraper import get_http_client, get_streaming_links, load_content, search

# Configure logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="KlonTV Stream Resolver API",
    description="API to search klon.fun, load movie and series details and resolve playable HLS streams with subtitles.",
    version="1.0.0"
)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Malformed selection"},
    404: {"model": ErrorResponse, "description": "Player payload or episode not found"},
    500: {"model": ErrorResponse, "description": "Internal server error"},
    502: {"model": ErrorResponse, "description": "Upstream page unavailable or unparsable"},
    503: {"model": ErrorResponse, "description": "Network error"},
}


def to_http_exception(error: KlonError) -> HTTPException:
    if isinstance(error, InvalidSelection):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, SelectionNotFound):
        return HTTPException(status_code=404, detail=f"Episode not found: season '{error.season_title}', episode '{error.episode_title}'")
    if isinstance(error, ExtractionNotFound):
        return HTTPException(status_code=404, detail=f"Player payload not found: {error.tag}")
    if isinstance(error, InvalidPayloadError):
        return HTTPException(status_code=502, detail=str(error))
    if isinstance(error, FetchError):
        if error.status_code is None:
            return HTTPException(status_code=503, detail=f"Network error: {error.reason}")
        return HTTPException(status_code=502, detail=f"Failed to fetch data: {error}")
    return HTTPException(status_code=500, detail=f"Scraping error: {error}")


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "KlonTV Stream Resolver API",
        "version": "1.0.0",
        "endpoints": {
            "search": "/search?query={query}",
            "content": "/content?url={content_page_url}",
            "streams": "/streams (POST {\"data\": [...]}) or /streams?data=...&data=...",
        },
        "documentation": "/docs"
    }


@app.get(
    "/search",
    response_model=List[SearchResult],
    summary="Search the catalog",
    description="Search klon.fun by title. Upstream failures yield an empty list. Example: `?query=рік та морті`"
)
async def search_content(
    query: str = Query(..., min_length=1, description="Search query"),
    client: AsyncClient = Depends(get_http_client)
):
    return await search(query, client)


@app.get(
    "/content",
    response_model=ContentDetail,
    responses=ERROR_RESPONSES,
    summary="Load a content page",
    description="Load title metadata; for a series also the dub/season/episode tree and the selections to pass to /streams."
)
async def get_content(
    url: str = Query(..., min_length=1, description="Content page URL from /search"),
    client: AsyncClient = Depends(get_http_client)
):
    try:
        return await load_content(url, client)
    except KlonError as e:
        raise to_http_exception(e)


@app.post(
    "/streams",
    response_model=StreamResult,
    responses=ERROR_RESPONSES,
    summary="Resolve streaming links",
    description="Resolve a selection from /content to one HLS source and an optional subtitle."
)
async def post_streams(
    request: StreamRequest,
    client: AsyncClient = Depends(get_http_client)
):
    try:
        return await get_streaming_links(request.data, client)
    except KlonError as e:
        raise to_http_exception(e)


@app.get(
    "/streams",
    response_model=StreamResult,
    responses=ERROR_RESPONSES,
    summary="Resolve streaming links (query form)",
    description="Same as POST /streams with the selection items passed as repeated `data` parameters."
)
async def get_streams(
    data: List[str] = Query(..., description="Selection items, player URL last"),
    client: AsyncClient = Depends(get_http_client)
):
    try:
        return await get_streaming_links(data, client)
    except KlonError as e:
        raise to_http_exception(e)
