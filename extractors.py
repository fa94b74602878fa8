# extractors.py
"""
Page extractors for the source site.

Everything in this module works on an already parsed document and never
touches the network. Link discovery is done by several overlapping
strategies; ``collect_links`` runs them over one document with a single
``seen`` set so a link found by two strategies is reported once.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Set, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from config import BASE_URL
from heuristics import (
    SUBTITLE_TERM_SI,
    absolute_url,
    detect_link_type,
    extract_format,
    extract_quality,
    extract_size,
    is_rejected_href,
    is_subtitle_text,
)
from link_classifier import analyze_download_link
from models import (
    CatalogItem,
    DirectLinkRecord,
    EpisodeInfo,
    EpisodeSummary,
    LinkRecord,
    MovieInfo,
    SeasonSummary,
    SeriesInfo,
)

logger = logging.getLogger(__name__)

DEFAULT_LINK_NAME = 'Download Link'

# Movie pages: generic anchor scan
DOWNLOAD_TEXT_PATTERN = re.compile(r'download|ඩවුලෝඩ්|dlserver|link|direct|get|මෙතනින්|dl-|grab', re.IGNORECASE)
DOWNLOAD_HREF_PATTERN = re.compile(r'/links/', re.IGNORECASE)
DOWNLOAD_CLASS_PATTERN = re.compile(r'download|link|button|btn|dl-', re.IGNORECASE)
DOWNLOAD_PARENT_CLASS_PATTERN = re.compile(r'download|links|button', re.IGNORECASE)
DOWNLOAD_CONTAINERS = ['download', 'links', 'download-links', 'download-section', 'downloads', 'item-links']
SUBTITLE_ANCHOR_TEXT_PATTERN = re.compile(rf'subtitle|{SUBTITLE_TERM_SI}|sub|srt|caption', re.IGNORECASE)
SUBTITLE_ANCHOR_HREF_PATTERN = re.compile(r'\.srt|\.sub|\.ass|subtitle', re.IGNORECASE)

# Movie pages: download sections
DOWNLOAD_SECTIONS = ['download-links', 'links-section', 'download-section', 'downloads', 'links']
SECTION_SUBTITLE_TEXT_PATTERN = re.compile(rf'subtitle|{SUBTITLE_TERM_SI}', re.IGNORECASE)
SECTION_SUBTITLE_HREF_PATTERN = re.compile(r'\.srt|subtitle', re.IGNORECASE)

# Episode pages
EPISODE_DOWNLOAD_TEXT_PATTERN = re.compile(rf'download|link|direct|{SUBTITLE_TERM_SI}', re.IGNORECASE)
EPISODE_CONTAINERS = ['download', 'links']

# Direct links
DIRECT_HREF_PATTERN = re.compile(r'\.(mkv|mp4|avi|mov|srt)$', re.IGNORECASE)
DIRECT_TEXT_PATTERN = re.compile(r'direct|dl|ඩවුලෝඩ්', re.IGNORECASE)

SERIES_TITLE_PATTERN = re.compile(r's\d+e\d+', re.IGNORECASE)
SERIES_BADGES = '.series-badge, .tv-series'
YEAR_PATTERN = re.compile(r'\d{4}')


# ---------------------------------------------------------------------------
# Small DOM helpers
# ---------------------------------------------------------------------------

def clean_text(element: Optional[Tag]) -> str:
    if element is None:
        return ''
    return element.get_text().strip()


def class_string(element: Optional[Tag]) -> str:
    if element is None:
        return ''
    classes = element.get('class') or []
    if isinstance(classes, str):
        return classes
    return ' '.join(classes)


def parent_tag(element: Tag) -> Optional[Tag]:
    return element.parent if isinstance(element.parent, Tag) else None


def inside(element: Tag, classes: List[str]) -> bool:
    """True when ``element`` or one of its ancestors carries any of ``classes``."""
    if any(name in classes for name in (element.get('class') or [])):
        return True
    return element.find_parent(class_=classes) is not None


def image_source(img: Optional[Tag]) -> Optional[str]:
    if img is None:
        return None
    return img.get('data-original') or img.get('src') or img.get('data-src')


def last_path_segment(url: str) -> str:
    segments = [segment for segment in url.split('/') if segment]
    return segments[-1] if segments else ''


# ---------------------------------------------------------------------------
# Candidate scan: discover -> reject -> dedupe -> classify -> partition
# ---------------------------------------------------------------------------

@dataclass
class Candidate:
    """One possible link found by a discovery strategy."""
    href: str
    text: str
    context: str = ''
    subtitle: bool = False
    purpose: Optional[str] = None


@dataclass(frozen=True)
class Strategy:
    """
    A way of discovering link candidates in a document.

    ``elements`` selects the DOM nodes to look at; ``candidate`` turns one
    node into a Candidate, or None when the node is not a link of interest.
    """
    name: str
    elements: Callable[[BeautifulSoup], Iterable[Tag]]
    candidate: Callable[[Tag], Optional[Candidate]]


@dataclass
class LinkSet:
    """Links accepted in one extraction pass, in discovery order."""
    records: List[LinkRecord] = field(default_factory=list)

    @property
    def downloads(self) -> List[LinkRecord]:
        return [record for record in self.records if record.purpose != 'subtitle']

    @property
    def subtitles(self) -> List[LinkRecord]:
        return [record for record in self.records if record.purpose == 'subtitle']


def build_link_record(candidate: Candidate, url: str) -> LinkRecord:
    """Classify one accepted candidate. The purpose is fixed before the delivery method."""
    href, text, context = candidate.href, candidate.text, candidate.context
    if candidate.subtitle:
        purpose = 'subtitle'
    else:
        purpose = candidate.purpose or detect_link_type(href, text)

    analysis = analyze_download_link(href, text)
    return LinkRecord(
        name=text or DEFAULT_LINK_NAME,
        url=url,
        quality=extract_quality(text),
        format=extract_format(href, text),
        size=extract_size(text, context),
        purpose=purpose,
        delivery_method=analysis.delivery_method,
        service=analysis.service,
        requires_interaction=analysis.requires_interaction,
        steps=list(analysis.steps),
    )


def collect_links(soup: BeautifulSoup, strategies: Iterable[Strategy], seen: Optional[Set[str]] = None) -> LinkSet:
    """
    Run every strategy over ``soup`` and merge their candidates.

    ``seen`` holds the absolute URLs accepted so far in this pass and is
    shared by all strategies. A node that cannot be read is logged and
    skipped without stopping the scan.
    """
    seen = set() if seen is None else seen
    link_set = LinkSet()
    for strategy in strategies:
        for element in strategy.elements(soup):
            try:
                candidate = strategy.candidate(element)
                if candidate is None or is_rejected_href(candidate.href):
                    continue
                url = absolute_url(candidate.href)
                if not url or url in seen:
                    continue
                record = build_link_record(candidate, url)
            except Exception as e:
                logger.warning(f"[{strategy.name}] Skipping malformed element: {e}")
                continue
            seen.add(url)
            link_set.records.append(record)
    return link_set


# Every anchor that looks like a download or subtitle link
def anchor_candidate(link: Tag) -> Optional[Candidate]:
    href = link.get('href', '')
    text = clean_text(link)
    parent = parent_tag(link)

    is_download = bool(
        DOWNLOAD_TEXT_PATTERN.search(text)
        or DOWNLOAD_HREF_PATTERN.search(href)
        or DOWNLOAD_CLASS_PATTERN.search(class_string(link))
        or DOWNLOAD_PARENT_CLASS_PATTERN.search(class_string(parent))
        or inside(link, DOWNLOAD_CONTAINERS)
    )
    is_subtitle = bool(SUBTITLE_ANCHOR_TEXT_PATTERN.search(text) or SUBTITLE_ANCHOR_HREF_PATTERN.search(href))
    if not (is_download or is_subtitle):
        return None
    return Candidate(href=href, text=text, context=clean_text(parent), subtitle=is_subtitle)


# Links and buttons inside the known download sections; the section text gives the size
def section_elements(soup: BeautifulSoup) -> Iterable[Tag]:
    for section in soup.find_all(class_=DOWNLOAD_SECTIONS):
        yield from section.select('a[href], button[data-url]')


def section_candidate(element: Tag) -> Optional[Candidate]:
    href = element.get('href') or element.get('data-url') or ''
    text = clean_text(element)
    section = element.find_parent(class_=DOWNLOAD_SECTIONS)
    is_subtitle = bool(SECTION_SUBTITLE_TEXT_PATTERN.search(text) or SECTION_SUBTITLE_HREF_PATTERN.search(href))
    return Candidate(href=href, text=text, context=clean_text(section), subtitle=is_subtitle)


# Form actions and explicit download attributes are always downloads
def form_candidate(element: Tag) -> Optional[Candidate]:
    href = element.get('action') or element.get('data-download-url') or ''
    element_text = clean_text(element)
    button = element.select_one('button, input[type="submit"]')
    button_text = ''
    if button is not None:
        button_text = (button.get('value') or clean_text(button)).strip()
    return Candidate(href=href, text=button_text or element_text, context=element_text, purpose='download')


# Episode pages use a narrower notion of a download link
def episode_anchor_candidate(link: Tag) -> Optional[Candidate]:
    href = link.get('href', '')
    text = clean_text(link)
    if not (EPISODE_DOWNLOAD_TEXT_PATTERN.search(text) or inside(link, EPISODE_CONTAINERS)):
        return None
    is_subtitle = is_subtitle_text(text) or '.srt' in href
    return Candidate(href=href, text=text, context=clean_text(parent_tag(link)), subtitle=is_subtitle)


# Links that serve a file without an intermediate page
def direct_anchor_candidate(link: Tag) -> Optional[Candidate]:
    href = link.get('href', '')
    text = clean_text(link)
    is_direct = bool(
        DIRECT_HREF_PATTERN.search(href)
        or DIRECT_TEXT_PATTERN.search(text)
        or link.has_attr('download')
    )
    if not is_direct or 'stream' in href:
        return None
    return Candidate(href=href, text=text, context=clean_text(parent_tag(link)), purpose='download')


def _anchors(soup: BeautifulSoup) -> Iterable[Tag]:
    return soup.select('a[href]')


def _forms(soup: BeautifulSoup) -> Iterable[Tag]:
    return soup.select('form[action], [data-download-url]')


ANCHOR_SCAN = Strategy('anchor_scan', _anchors, anchor_candidate)
SECTION_SCAN = Strategy('section_scan', section_elements, section_candidate)
FORM_SCAN = Strategy('form_scan', _forms, form_candidate)
EPISODE_ANCHOR_SCAN = Strategy('episode_anchor_scan', _anchors, episode_anchor_candidate)
DIRECT_ANCHOR_SCAN = Strategy('direct_anchor_scan', _anchors, direct_anchor_candidate)

MOVIE_LINK_STRATEGIES: Tuple[Strategy, ...] = (ANCHOR_SCAN, SECTION_SCAN, FORM_SCAN)
EPISODE_LINK_STRATEGIES: Tuple[Strategy, ...] = (EPISODE_ANCHOR_SCAN,)
DIRECT_LINK_STRATEGIES: Tuple[Strategy, ...] = (DIRECT_ANCHOR_SCAN,)

# ---------------------------------------------------------------------------
# Listing pages (search results, latest)
# ---------------------------------------------------------------------------

def infer_content_type(title: str, item: Optional[Tag] = None) -> str:
    lowered = title.lower()
    is_series = (
        'season' in lowered
        or 'episode' in lowered
        or SERIES_TITLE_PATTERN.search(title) is not None
        or (item is not None and item.select_one(SERIES_BADGES) is not None)
    )
    return 'series' if is_series else 'movie'


def parse_catalog_item(item: Tag) -> Optional[CatalogItem]:
    link_tag = item.select_one('a[data-url]') or item.select_one('a[href]')
    if link_tag is None:
        return None
    data_url = (link_tag.get('data-url') or '').strip()
    href = (link_tag.get('href') or '').strip()
    if href:
        link = absolute_url(href)
    elif data_url:
        link = f"{BASE_URL}/{data_url}/"
    else:
        return None

    title = clean_text(item.select_one('.item-desc-title h3, h3')) or (link_tag.get('title') or '').strip()
    if not title:
        return None

    image = image_source(item.select_one('img.mli-thumb, img'))

    year = None
    year_match = YEAR_PATTERN.search(clean_text(item.select_one('.item-desc-giha, .year, .date')))
    if year_match:
        year = year_match.group(0)

    quality = clean_text(item.select_one('.item-desc-hl, .quality')) or extract_quality(title)

    return CatalogItem(
        title=title,
        url=link,
        image=absolute_url(image),
        year=year,
        quality=quality,
        type=infer_content_type(title, item),
        id=data_url or last_path_segment(link),
    )


def parse_catalog_items(soup: BeautifulSoup, content_type: str = 'all', limit: Optional[int] = None) -> List[CatalogItem]:
    boxes = soup.select('.item-box')
    logger.info(f"Found {len(boxes)} item-box elements")
    if limit is not None:
        boxes = boxes[:limit]

    results = []
    for box in boxes:
        try:
            item = parse_catalog_item(box)
        except Exception as e:
            logger.error(f"Error parsing catalog item: {e}")
            continue
        if item is None:
            continue
        if content_type != 'all' and item.type != content_type:
            continue
        logger.debug(f"[FOUND] {item.title} ({item.type})")
        results.append(item)
    return results


# ---------------------------------------------------------------------------
# Detail pages
# ---------------------------------------------------------------------------

def extract_meta(soup: BeautifulSoup) -> dict:
    """Collect label/value pairs from the info panel, plus the rating badge."""
    meta = {}
    for item in soup.select('.meta-item, .movie-info, .info-item, .movie-data'):
        try:
            text = clean_text(item)
            label = ' '.join(clean_text(el) for el in item.select('.label, strong, .meta-label')).strip()
            value = ' '.join(clean_text(el) for el in item.select('.value, .meta-value')).strip()
            if not value and label:
                value = text.replace(label, '', 1).replace(':', '', 1).strip()
            if label and value:
                meta[label.rstrip(':').strip()] = value
            elif ':' in text:
                key, rest = text.split(':', 1)
                if key.strip():
                    meta[key.strip()] = rest.strip()
        except Exception as e:
            logger.debug(f"Skipping meta item: {e}")
            continue

    rating = clean_text(soup.select_one('.imdb-rating, .rating, [class*="rating"]'))
    if rating:
        meta['Rating'] = rating
    return meta


def parse_movie_detail(soup: BeautifulSoup, movie_id: str, url: str) -> Tuple[MovieInfo, LinkSet]:
    title = clean_text(soup.select_one('.item-title h1, h1, .entry-title, .title')) or 'Unknown'
    description = clean_text(soup.select_one('.item-desc, .description, .summary, .entry-content')) or None
    image = image_source(soup.select_one('img.mli-thumb, .item-poster img, img.poster, .featured-image img'))

    info = MovieInfo(
        id=movie_id,
        title=title,
        url=url,
        image=absolute_url(image),
        description=description,
        meta=extract_meta(soup),
    )
    links = collect_links(soup, MOVIE_LINK_STRATEGIES)
    logger.info(f"Movie {movie_id}: {len(links.downloads)} downloads, {len(links.subtitles)} subtitles")
    return info, links


def select_blocks(soup: BeautifulSoup, primary: str, fallback: str) -> List[Tag]:
    """Elements matching ``primary``; the looser ``fallback`` selector is used only when nothing matches."""
    return soup.select(primary) or soup.select(fallback)


def parse_seasons(soup: BeautifulSoup) -> List[SeasonSummary]:
    blocks = soup.select('.season-item, .season')
    if not blocks:
        # Loose match also hits wrappers and labels; keep blocks that carry a number
        blocks = [block for block in soup.select('[class*="season"]') if block.select_one('.season-number, .number')]
    seasons = []
    for index, element in enumerate(blocks):
        label = clean_text(element.select_one('.season-number, .number')) or f"Season {index + 1}"
        seasons.append(SeasonSummary(
            season=label,
            title=clean_text(element.select_one('.season-title, .title')),
        ))
    return seasons


def parse_series_episodes(soup: BeautifulSoup) -> List[EpisodeSummary]:
    episodes = []
    seen = set()
    for index, element in enumerate(select_blocks(soup, '.episode-item, .episode', '[class*="episode"]')):
        try:
            link = element.select_one('a[href]')
            if link is None:
                continue
            href = link.get('href', '').strip()
            url = absolute_url(href)
            if not url or url in seen:
                continue
            title = clean_text(element.select_one('h2, h3, .title, .episode-title'))
            number = re.search(r'e\d+', title, re.IGNORECASE)
            seen.add(url)
            episodes.append(EpisodeSummary(
                title=title,
                episode=number.group(0) if number else f"E{index + 1}",
                url=url,
                id=last_path_segment(href),
            ))
        except Exception as e:
            logger.warning(f"Error parsing series episode: {e}")
            continue
    return episodes


def parse_series_detail(soup: BeautifulSoup, series_id: str, url: str) -> Tuple[SeriesInfo, List[SeasonSummary], List[EpisodeSummary]]:
    title = clean_text(soup.select_one('h1, .series-title, .entry-title'))
    description = clean_text(soup.select_one('.description, .summary, .entry-content')) or None
    image = image_source(soup.select_one('.poster img, .series-poster img'))

    info = SeriesInfo(
        id=series_id,
        title=title,
        url=url,
        image=absolute_url(image),
        description=description,
        meta=extract_meta(soup),
    )
    return info, parse_seasons(soup), parse_series_episodes(soup)


def normalize_season(season: Optional[str]) -> Optional[int]:
    """'2', 'S2', 's02' and 'Season 2' all mean season 2."""
    if not season:
        return None
    match = re.search(r'\d+', season)
    return int(match.group(0)) if match else None


def parse_episode_list(soup: BeautifulSoup, season: Optional[str] = None) -> List[EpisodeSummary]:
    wanted_season = normalize_season(season)
    episodes = []
    seen = set()
    for element in select_blocks(soup, '.episode-item, .episode', '[class*="episode"], article'):
        try:
            title = clean_text(element.select_one('h2, h3, .title, .episode-title, a'))
            link = element.select_one('a[href]')
            if link is None:
                continue
            href = link.get('href', '').strip()

            season_match = re.search(r's(\d+)', title, re.IGNORECASE)
            episode_match = re.search(r'e(\d+)', title, re.IGNORECASE)
            episode_season = f"S{season_match.group(1)}" if season_match else None
            episode_number = f"E{episode_match.group(1)}" if episode_match else None

            if wanted_season is not None and season_match and int(season_match.group(1)) != wanted_season:
                continue
            if not (SERIES_TITLE_PATTERN.search(title) or 'Episode' in title):
                continue

            url = absolute_url(href)
            if not url or url in seen:
                continue
            seen.add(url)
            episodes.append(EpisodeSummary(
                title=title,
                season=episode_season,
                episode=episode_number,
                url=url,
                image=absolute_url(image_source(element.select_one('img'))),
                id=last_path_segment(href),
            ))
        except Exception as e:
            logger.warning(f"Error parsing episode entry: {e}")
            continue
    return episodes


def parse_episode_detail(soup: BeautifulSoup, episode_id: str, url: str) -> Tuple[EpisodeInfo, LinkSet]:
    title = clean_text(soup.select_one('h1, .episode-title, .entry-title'))
    description = clean_text(soup.select_one('.description, .summary, .entry-content')) or None
    image = image_source(soup.select_one('.poster img, .episode-poster img'))

    info = EpisodeInfo(
        id=episode_id,
        title=title,
        url=url,
        image=absolute_url(image),
        description=description,
        meta=extract_meta(soup),
    )
    links = collect_links(soup, EPISODE_LINK_STRATEGIES)
    logger.info(f"Episode {episode_id}: {len(links.downloads)} downloads, {len(links.subtitles)} subtitles")
    return info, links


def parse_direct_links(soup: BeautifulSoup) -> List[DirectLinkRecord]:
    links = collect_links(soup, DIRECT_LINK_STRATEGIES)
    return [
        DirectLinkRecord(**record.model_dump(), is_direct=record.delivery_method == 'direct')
        for record in links.records
    ]
