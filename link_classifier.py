# link_classifier.py
"""
Decide how a user actually gets the file behind a link.

The rules run in a fixed order (hosted, direct, redirect) and every rule that
matches replaces the result of the rules before it, so a later rule always
wins. A link no rule recognises is ``indirect``.
"""
from dataclasses import dataclass
from typing import Callable, Optional, Tuple
from urllib.parse import urlsplit

HOSTED_SERVICES = (
    'pixeldrain', 'mediafire', 'mega.nz', 'drive.google', 'dropbox',
    'uploadrar', 'uptobox', 'rapidgator', 'zippyshare', 'sendspace',
    'file-upload', 'clicknupload', 'gofile', 'anonfiles', 'bayfiles',
    'mixdrop', 'doodstream', 'streamtape', 'racaty', 'gdtot',
)

DIRECT_EXTENSIONS = ('.mkv', '.mp4', '.avi', '.mov', '.srt', '.zip', '.rar')

# Intermediate countdown pages on the source site live under /links/
REDIRECT_MARKERS = ('sinhalasub.lk/links/', '/links/')

HOSTED_STEPS = (
    'Visit link',
    'Wait for countdown (usually 5-15 seconds)',
    'Click download button',
    'Download starts',
)
DIRECT_STEPS = ('Click to download directly',)
REDIRECT_STEPS = (
    'Opens intermediate page',
    'Countdown timer (usually 15 seconds)',
    'Download button appears',
    'Click to download',
)


@dataclass(frozen=True)
class LinkAnalysis:
    delivery_method: str = 'indirect'
    service: str = 'unknown'
    requires_interaction: bool = True
    steps: Tuple[str, ...] = ()


INDIRECT = LinkAnalysis()


def _url_path(url: str) -> str:
    try:
        return urlsplit(url).path
    except ValueError:
        return url.split('?', 1)[0].split('#', 1)[0]


def _hosted_rule(url: str, combined: str, current: LinkAnalysis) -> Optional[LinkAnalysis]:
    for hosted in HOSTED_SERVICES:
        if hosted in combined:
            return LinkAnalysis(
                delivery_method='hosted',
                service=hosted.replace('.', ''),
                requires_interaction=True,
                steps=HOSTED_STEPS,
            )
    return None


def _direct_rule(url: str, combined: str, current: LinkAnalysis) -> Optional[LinkAnalysis]:
    # Only the URL path counts here, never the link text
    path = _url_path(url).lower()
    if path.endswith(DIRECT_EXTENSIONS):
        return LinkAnalysis(
            delivery_method='direct',
            service='direct',
            requires_interaction=False,
            steps=DIRECT_STEPS,
        )
    return None


def _redirect_rule(url: str, combined: str, current: LinkAnalysis) -> Optional[LinkAnalysis]:
    if any(marker in combined for marker in REDIRECT_MARKERS):
        # The service found by an earlier rule is kept
        return LinkAnalysis(
            delivery_method='redirect',
            service=current.service,
            requires_interaction=True,
            steps=REDIRECT_STEPS,
        )
    return None


Rule = Callable[[str, str, LinkAnalysis], Optional[LinkAnalysis]]

CLASSIFICATION_RULES: Tuple[Tuple[str, Rule], ...] = (
    ('hosted', _hosted_rule),
    ('direct', _direct_rule),
    ('redirect', _redirect_rule),
)


def analyze_download_link(url: Optional[str], text: Optional[str] = '') -> LinkAnalysis:
    url = url or ''
    combined = f"{url} {text or ''}".lower()

    result = INDIRECT
    for _name, rule in CLASSIFICATION_RULES:
        outcome = rule(url, combined, result)
        if outcome is not None:
            result = outcome
    return result
