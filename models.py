# models.py
from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Literal

ContentType = Literal["movie", "series"]
LinkPurpose = Literal["subtitle", "stream", "torrent", "download"]
DeliveryMethod = Literal["direct", "hosted", "redirect", "indirect"]


class CatalogItem(BaseModel):
    title: str = Field(..., description="Item title")
    url: str = Field(..., description="Item page URL")
    image: Optional[str] = Field(default=None, description="Poster URL")
    year: Optional[str] = Field(default=None, description="Release year")
    quality: str = Field(..., description="Quality badge or quality inferred from the title")
    type: ContentType = Field(..., description="movie or series")
    id: str = Field(..., description="Site identifier used by the detail endpoints")

    class Config:
        from_attributes = True


class LinkRecord(BaseModel):
    name: str = Field(..., description="Link text")
    url: str = Field(..., description="Absolute link URL")
    quality: str = Field(..., description="Quality label, 'Standard' when unknown")
    format: str = Field(..., description="Container or subtitle format, e.g. MKV, SRT")
    size: str = Field(..., description="Human readable size, 'Size Unknown' when unknown")
    purpose: LinkPurpose = Field(..., description="What the link is for")
    delivery_method: DeliveryMethod = Field(..., description="How the file is delivered")
    service: str = Field(..., description="Hosting service name, 'direct' or 'unknown'")
    requires_interaction: bool = Field(..., description="Whether user action beyond one click is needed")
    steps: List[str] = Field(default_factory=list, description="Steps the user follows to get the file")

    class Config:
        from_attributes = True
        frozen = True


class DirectLinkRecord(LinkRecord):
    is_direct: bool = Field(..., description="True when the link serves the file itself")


class LinkCollection(BaseModel):
    links: List[LinkRecord] = Field(default_factory=list)
    count: int = Field(0, description="Number of links")


class DirectLinkCollection(BaseModel):
    links: List[DirectLinkRecord] = Field(default_factory=list)
    count: int = Field(0, description="Number of links")


class ResourceInfo(BaseModel):
    id: str = Field(..., description="Site identifier")
    title: str = Field(..., description="Title")
    url: str = Field(..., description="Page URL")
    image: Optional[str] = Field(None, description="Poster URL")
    description: Optional[str] = Field(None, description="Synopsis")
    meta: Dict[str, str] = Field(default_factory=dict, description="Label to value pairs from the info panel")

    class Config:
        from_attributes = True


class MovieInfo(ResourceInfo):
    pass


class SeriesInfo(ResourceInfo):
    type: Literal["series"] = "series"


class EpisodeInfo(ResourceInfo):
    type: Literal["episode"] = "episode"


class SeasonSummary(BaseModel):
    season: str = Field(..., description="Season label")
    title: str = Field("", description="Season title")


class EpisodeSummary(BaseModel):
    title: str = Field(..., description="Episode title")
    episode: Optional[str] = Field(None, description="Episode label, e.g. E02")
    season: Optional[str] = Field(None, description="Season label, e.g. S01")
    url: str = Field(..., description="Episode page URL")
    image: Optional[str] = Field(None, description="Episode thumbnail URL")
    id: str = Field(..., description="Episode identifier for /episode/{id}")


class SeasonList(BaseModel):
    list: List[SeasonSummary] = Field(default_factory=list)
    count: int = 0


class EpisodeList(BaseModel):
    list: List[EpisodeSummary] = Field(default_factory=list)
    count: int = 0


class CatalogResults(BaseModel):
    items: List[CatalogItem] = Field(default_factory=list)
    count: int = 0


class SearchQuery(BaseModel):
    query: str
    page: int
    type: str


class LatestQuery(BaseModel):
    page: int
    type: str


class SearchResponse(BaseModel):
    success: bool = True
    search: SearchQuery
    results: CatalogResults


class LatestResponse(BaseModel):
    success: bool = True
    latest: LatestQuery
    results: CatalogResults


class MovieResponse(BaseModel):
    success: bool = True
    movie: MovieInfo
    downloads: LinkCollection
    subtitles: LinkCollection


class SeriesResponse(BaseModel):
    success: bool = True
    series: SeriesInfo
    seasons: SeasonList
    episodes: EpisodeList


class EpisodesResponse(BaseModel):
    success: bool = True
    series_id: str
    season: str
    episodes: EpisodeList


class EpisodeResponse(BaseModel):
    success: bool = True
    episode: EpisodeInfo
    downloads: LinkCollection
    subtitles: LinkCollection


class DirectLinksResponse(BaseModel):
    success: bool = True
    content_id: str
    downloads: DirectLinkCollection


class MemoryUsage(BaseModel):
    rss: str
    vms: str


class ServerStatus(BaseModel):
    uptime: str
    memory_usage: MemoryUsage


class CacheStatus(BaseModel):
    total_keys: int
    active: bool = True


class HealthResponse(BaseModel):
    success: bool = True
    status: str = "healthy"
    server: ServerStatus
    cache: CacheStatus


class CacheClearResponse(BaseModel):
    success: bool = True
    message: str = "Cache cleared successfully"
    keys_cleared: int


class ErrorResponse(BaseModel):
    success: bool = Field(False, description="Always false for errors")
    error: str = Field(..., description="Error message")
    details: Optional[str] = Field(None, description="Additional error details")

    class Config:
        from_attributes = True


def link_collection(links: List[LinkRecord]) -> LinkCollection:
    return LinkCollection(links=links, count=len(links))
