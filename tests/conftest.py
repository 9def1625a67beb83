import asyncio

import httpx
import pytest

from scraper import create_http_client

SERIES_PAGE_URL = "https://klon.fun/serialy/123-rick-and-morty.html"
MOVIE_PAGE_URL = "https://klon.fun/filmy/456-dune.html"
SERIES_PLAYER_URL = "https://tortuga.wtf/vod/123?multivoice"
MOVIE_PLAYER_URL = "https://tortuga.wtf/vod/456"

SERIES_PAYLOAD = (
    '[{"title":"UA","folder":[{"title":"Season 1","folder":'
    '[{"title":"Episode 1","file":"https://cdn/ep1.m3u8"}]}]}]'
)

SERIES_DETAIL_HTML = """
<html>
<head>
<script type="application/ld+json">
{"@context":"https://schema.org","@type":"TVSeries","name":"Рік та Морті",
 "image":"https://klon.fun/uploads/rick.jpg","description":"Пригоди вченого та онука.",
 "dateCreated":"2013-12-02"}
</script>
</head>
<body>
<h1>Рік та Морті (2013)</h1>
<div class="film-player"><iframe data-src="https://tortuga.wtf/vod/123?multivoice"></iframe></div>
<table class="table-info">
  <tr><td><a class="table-info__link" href="/serialy/">Серіали</a></td></tr>
  <tr><td><a class="table-info__link" href="/komedii/">Комедія</a></td></tr>
</table>
</body>
</html>
"""

MOVIE_DETAIL_HTML = """
<html>
<head><meta property="og:image" content="/uploads/dune.jpg"></head>
<body>
<h1>Дюна</h1>
<div class="film-player"><iframe src="//tortuga.wtf/vod/456"></iframe></div>
<a class="table-info__link" href="/fantastyka/">Фантастика</a>
</body>
</html>
"""

SERIES_PLAYER_HTML = """
<html><body><div id="player"></div>
<script>
var player = new Playerjs({id:"player",
    file: '%s',
    subtitle: '[Ukrainian]https://cdn/sub.vtt'
});
</script>
</body></html>
""" % SERIES_PAYLOAD

MOVIE_PLAYER_HTML = """
<script>
var player = new Playerjs({id:"player", file:"https://cdn/dune/hls/index.m3u8", poster:"https://cdn/dune.jpg"});
</script>
"""

SEARCH_HTML = """
<div class="short-news">
  <div class="short-news__slide-item">
    <a class="card-link__style" href="/serialy/123-rick-and-morty.html">Рік та Морті</a>
    <img class="card-poster__img" data-src="/uploads/rick.jpg" alt="">
  </div>
  <div class="short-news__slide-item">
    <a class="card-link__style" href="https://klon.fun/filmy/456-dune.html">Дюна</a>
  </div>
  <div class="short-news__slide-item">
    <a class="card-link__style">Без посилання</a>
  </div>
</div>
"""


def html_response(body: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, text=body, headers={"Content-Type": "text/html; charset=utf-8"})


@pytest.fixture
def run_with_client():
    """Run ``factory(client)`` against an AsyncClient served by ``handler``."""
    def run(handler, factory):
        async def main():
            async with create_http_client(httpx.MockTransport(handler)) as client:
                return await factory(client)
        return asyncio.run(main())
    return run


@pytest.fixture
def site_pages():
    """Default routing table: URL -> (status, body)."""
    return {
        SERIES_PAGE_URL: (200, SERIES_DETAIL_HTML),
        MOVIE_PAGE_URL: (200, MOVIE_DETAIL_HTML),
        SERIES_PLAYER_URL: (200, SERIES_PLAYER_HTML),
        "https://tortuga.wtf/vod/123": (200, SERIES_PLAYER_HTML),
        MOVIE_PLAYER_URL: (200, MOVIE_PLAYER_HTML),
    }


@pytest.fixture
def site_handler(site_pages):
    """MockTransport handler serving ``site_pages``; requested URLs are kept on ``.requests``."""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        status_code, body = site_pages.get(str(request.url), (404, "Not Found"))
        return html_response(body, status_code)

    handler.requests = requests
    return handler
