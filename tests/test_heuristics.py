"""
Unit tests for heuristics.py functions.
"""
import pytest

from heuristics import (
    QUALITY_TOKENS,
    absolute_url,
    detect_link_type,
    extract_format,
    extract_quality,
    extract_size,
    is_rejected_href,
    is_social_url,
    is_subtitle_text,
)


class TestExtractQuality:
    """Test cases for extract_quality."""

    @pytest.mark.parametrize('text, expected', [
        ('Download 1080p MKV 1.4GB', '1080p'),
        ('Avatar 2022 720p WEB-DL', '720p'),
        ('4K HDR release', '4K'),
        ('hdrip 480p', '480p'),
        ('Some BluRay rip', 'BluRay'),
        ('cam copy', 'CAM'),
    ])
    def test_known_tokens(self, text, expected):
        assert extract_quality(text) == expected

    def test_first_token_in_list_order_wins(self):
        # 1080p comes before HD in the token list
        assert extract_quality('HD 1080p') == '1080p'

    def test_longer_token_wins_at_same_position(self):
        assert extract_quality('HDRip') == 'HDRip'
        assert extract_quality('Movie HDTV') == 'HDTV'
        assert extract_quality('HD and HDRip') == 'HD'

    @pytest.mark.parametrize('text, expected', [
        ('Avatar1080p', '1080p'),
        ('x265HDRip', 'HDRip'),
        ('1080pBluRay', '1080p'),
        ('Avatar.2022.720p.WEB-DL', '720p'),
    ])
    def test_glued_tokens(self, text, expected):
        assert extract_quality(text) == expected

    @pytest.mark.parametrize('token', QUALITY_TOKENS)
    def test_every_token_is_found(self, token):
        assert extract_quality(token) == token
        assert extract_quality(f'Film {token} release') == token
        assert extract_quality(f'Film{token}release') == token
        assert extract_quality(token.lower()) == token

    @pytest.mark.parametrize('text', ['', None, 'Download now'])
    def test_default(self, text):
        assert extract_quality(text) == 'Standard'


class TestExtractFormat:
    """Test cases for extract_format."""

    def test_extension_in_url(self):
        assert extract_format('https://cdn.example.com/a.mkv') == 'MKV'

    def test_token_in_text(self):
        assert extract_format('https://www.mediafire.com/file/x/file', 'Download 1080p MKV 1.4GB') == 'MKV'

    def test_subtitle_format(self):
        assert extract_format('https://sinhalasub.lk/subs/a.srt', 'Subtitle') == 'SRT'

    def test_word_containing_extension_is_ignored(self):
        assert extract_format('https://example.com/movie', 'A movie') == 'MP4'

    def test_default(self):
        assert extract_format(None, None) == 'MP4'


class TestExtractSize:
    """Test cases for extract_size."""

    @pytest.mark.parametrize('text, expected', [
        ('Download 1080p MKV 1.4GB', '1.4 GB'),
        ('700 mb', '700 MB'),
        ('Size: 512KB', '512 KB'),
        ('2 TB pack', '2 TB'),
    ])
    def test_human_sizes(self, text, expected):
        assert extract_size(text) == expected

    def test_size_from_context(self):
        assert extract_size('Download', 'Avatar 1080p 2.1 GB') == '2.1 GB'

    def test_byte_counts_are_converted(self):
        assert extract_size('1610612736 bytes') == '1.50 GB'
        assert extract_size('1048577 bytes') == '1.00 MB'
        assert extract_size('2048 bytes') == '2.00 KB'

    def test_byte_thresholds_are_strict(self):
        assert extract_size('1073741825 bytes') == '1.00 GB'
        assert extract_size('1073741824 bytes') == '1024.00 MB'
        assert extract_size('1024 bytes') == '1024 Bytes'

    def test_small_byte_count(self):
        assert extract_size('512 bytes') == '512 Bytes'

    def test_unknown(self):
        assert extract_size('Download', '') == 'Size Unknown'
        assert extract_size(None) == 'Size Unknown'


class TestAbsoluteUrl:
    """Test cases for absolute_url."""

    def test_relative_path(self):
        assert absolute_url('/movie/avatar') == 'https://sinhalasub.lk/movie/avatar'

    def test_bare_path(self):
        assert absolute_url('movie/avatar') == 'https://sinhalasub.lk/movie/avatar'

    def test_protocol_relative(self):
        assert absolute_url('//cdn.example.com/a.jpg') == 'https://cdn.example.com/a.jpg'

    def test_absolute_unchanged(self):
        assert absolute_url('http://example.com/a') == 'http://example.com/a'

    def test_surrounding_whitespace_is_stripped(self):
        assert absolute_url('  /a  ') == 'https://sinhalasub.lk/a'

    @pytest.mark.parametrize('url', [None, '', '   '])
    def test_empty(self, url):
        assert absolute_url(url) is None

    @pytest.mark.parametrize('url', [
        '/movie/avatar',
        'movie/avatar',
        '//cdn.example.com/a.jpg',
        'http://example.com/a',
        'https://sinhalasub.lk/links/1?x=2',
        '  /a  ',
        '   ',
        None,
    ])
    def test_idempotent(self, url):
        once = absolute_url(url)
        assert absolute_url(once) == once


class TestDetectLinkType:
    """Test cases for detect_link_type."""

    @pytest.mark.parametrize('url, text, expected', [
        ('https://x/a.srt', '', 'subtitle'),
        ('https://x/a', 'Sinhala උපසිරසි', 'subtitle'),
        ('https://x/player/1', 'Play', 'stream'),
        ('https://x/a', 'Watch online', 'stream'),
        ('magnet:?xt=urn:btih:abc', '', 'torrent'),
        ('https://x/a.torrent', '', 'torrent'),
        ('https://x/a.mkv', 'Download', 'download'),
    ])
    def test_types(self, url, text, expected):
        assert detect_link_type(url, text) == expected

    def test_subtitle_beats_stream(self):
        assert detect_link_type('https://x/stream/a.srt', '') == 'subtitle'


class TestRejection:
    """Hrefs that are never link candidates."""

    @pytest.mark.parametrize('href', [
        '', '   ', None, '#', '#downloads', 'javascript:void(0)', 'JavaScript:go()',
        'https://www.facebook.com/sharer.php?u=x', 'https://t.me/share/url?url=x',
        'https://api.whatsapp.com/send?text=x',
    ])
    def test_rejected(self, href):
        assert is_rejected_href(href)

    @pytest.mark.parametrize('href', [
        'https://www.mediafire.com/file/abc/file',
        '/links/123',
        'https://example.com/page#section',
    ])
    def test_accepted(self, href):
        assert not is_rejected_href(href)

    def test_social_detection(self):
        assert is_social_url('https://twitter.com/intent/tweet')
        assert not is_social_url('https://pixeldrain.com/u/abc')

    def test_subtitle_text(self):
        assert is_subtitle_text('Sinhala Subtitle')
        assert is_subtitle_text('උපසිරසි')
        assert not is_subtitle_text('Download')
        assert not is_subtitle_text(None)
