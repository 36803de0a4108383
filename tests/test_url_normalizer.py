from listing_scraper.core.url_normalizer import (
    canonical_listing_url,
    normalize_image_url,
    normalize_url,
)


def test_normalize_url_resolves_site_relative_and_protocol_relative_links():
    assert normalize_url('/r/cafe-one-chicago') == 'https://www.opentable.com/r/cafe-one-chicago'
    assert normalize_url('//cdn.example.com/a.png') == 'https://cdn.example.com/a.png'
    assert normalize_url('/r/x', 'https://www.opentable.co.uk/') == 'https://www.opentable.co.uk/r/x'


def test_normalize_url_drops_fragment_and_keeps_absolute_links():
    assert normalize_url('http://example.com/r/a#reviews') == 'http://example.com/r/a'
    assert normalize_url('  https://example.com/r/a  ') == 'https://example.com/r/a'


def test_normalize_url_rejects_unresolvable_values():
    assert normalize_url('r/cafe') is None
    assert normalize_url('javascript:void(0)') is None
    assert normalize_url('') is None
    assert normalize_url(12345) is None
    assert normalize_url(None) is None


def test_normalize_image_url_rewrites_resizer_links_to_large_variant():
    url = 'https://resizer.otstatic.com/v2/photos/wide-medium/2/41234567.webp'
    assert normalize_image_url(url) == 'https://resizer.otstatic.com/v2/photos/xlarge/2/41234567.jpg'


def test_normalize_image_url_appends_extension_only_when_missing():
    assert normalize_image_url('https://images.example.com/photo/123') == 'https://images.example.com/photo/123.jpg'
    assert normalize_image_url('https://images.example.com/photo/123.png') == 'https://images.example.com/photo/123.png'


def test_canonical_listing_url():
    assert canonical_listing_url('42') == 'https://www.opentable.com/r/42'
    assert canonical_listing_url(None) is None
