# models.py
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, HttpUrl

from errors import InvalidSelection


class ContentKind(str, Enum):
    MOVIE = "movie"
    SERIES = "series"


class StreamQuality(str, Enum):
    AUTO = "auto"


class StreamType(str, Enum):
    HLS = "hls"


class SearchResult(BaseModel):
    title: str = Field(..., description="Title as shown on the listing card")
    href: HttpUrl = Field(..., description="Content page URL")
    poster_url: Optional[HttpUrl] = Field(default=None, description="Poster image URL")

    class Config:
        frozen = True


# Player tree. Built once by player.normalize_tree and never modified.

class Episode(BaseModel):
    title: str = Field(..., description="Episode title as authored by the site")
    file: str = Field(..., description="Media URL of the episode")
    id: Optional[str] = Field(default=None, description="Player-side episode id")
    poster: Optional[str] = Field(default=None, description="Episode thumbnail URL")
    subtitle: Optional[str] = Field(default=None, description="Raw per-episode subtitle descriptor")

    class Config:
        frozen = True


class Season(BaseModel):
    title: str = Field(..., description="Season title")
    episodes: Tuple[Episode, ...] = Field(default=(), description="Episodes in player order")

    class Config:
        frozen = True


class Dub(BaseModel):
    title: str = Field(..., description="Voice-over / language track title")
    seasons: Tuple[Season, ...] = Field(default=(), description="Seasons in player order")

    class Config:
        frozen = True


class PlayerTree(BaseModel):
    dubs: Tuple[Dub, ...] = Field(default=(), description="Dubs in player order")

    class Config:
        frozen = True


class InvalidPayload(BaseModel):
    """Result of normalize_tree when the payload cannot be deserialized."""
    reason: str

    class Config:
        frozen = True


TreeResult = Union[PlayerTree, InvalidPayload]


class EpisodeLink(BaseModel):
    dub: str = Field(..., description="Dub the episode was first found in")
    season: str = Field(..., description="Season title")
    episode: str = Field(..., description="Episode title")
    season_number: Optional[int] = Field(default=None, description="First number in the season title")
    episode_number: Optional[int] = Field(default=None, description="First number in the episode title")
    data: List[str] = Field(..., description="Serialized selection to pass to /streams")


class ContentDetail(BaseModel):
    title: str = Field(..., description="Content title")
    url: HttpUrl = Field(..., description="Content page URL")
    poster_url: Optional[HttpUrl] = Field(default=None, description="Poster image URL")
    plot: Optional[str] = Field(default=None, description="Plot summary")
    year: Optional[int] = Field(default=None, description="Release year")
    tags: List[str] = Field(default_factory=list, description="Genre / category tags")
    player_url: HttpUrl = Field(..., description="Embedded player URL")
    is_movie: bool = Field(..., description="True for single-video titles")
    episodes: List[Dub] = Field(default_factory=list, description="Dub → Season → Episode tree (series only)")
    links: List[EpisodeLink] = Field(default_factory=list, description="Selectable episodes (series only)")
    data: Optional[List[str]] = Field(default=None, description="Serialized selection (movies only)")


class Selection(BaseModel):
    """
    What the caller wants to watch.

    Serialized as [title, player_url] for a movie or
    [season_title, episode_title, player_url] for a series episode.
    """
    player_url: str
    title: Optional[str] = None
    season_title: Optional[str] = None
    episode_title: Optional[str] = None

    class Config:
        frozen = True

    @property
    def is_sole(self) -> bool:
        return self.season_title is None

    @classmethod
    def from_data(cls, data: Union[str, List[str]]) -> "Selection":
        if isinstance(data, str):
            # Legacy form: items joined with ", "
            items = data.split(", ")
        else:
            items = list(data)

        if len(items) not in (2, 3):
            raise InvalidSelection(f"Selection must have 2 or 3 items, got {len(items)}")

        player_url = items[-1].strip() if isinstance(items[-1], str) else ""
        if not player_url:
            raise InvalidSelection("Selection is missing the player URL")

        if len(items) == 2:
            return cls(player_url=player_url, title=items[0])
        return cls(player_url=player_url, season_title=items[0], episode_title=items[1])


class StreamRequest(BaseModel):
    data: List[str] = Field(..., description="[title, playerUrl] or [seasonTitle, episodeTitle, playerUrl]")


class Subtitle(BaseModel):
    language: str = Field(..., description="Subtitle label, e.g. Ukrainian")
    url: str = Field(..., description="Subtitle track URL")


class Source(BaseModel):
    url: str = Field(..., description="Playable media URL")
    quality: StreamQuality = Field(default=StreamQuality.AUTO)
    type: StreamType = Field(default=StreamType.HLS)
    headers: Dict[str, str] = Field(default_factory=dict, description="Headers required by the media host")


class StreamResult(BaseModel):
    sources: List[Source] = Field(default_factory=list)
    subtitles: List[Subtitle] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Error message")
    code: Optional[int] = Field(None, description="HTTP status code")
    details: Optional[str] = Field(None, description="Additional error details")
