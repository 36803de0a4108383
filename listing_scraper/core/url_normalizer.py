"""
URL canonicalization for listing and image links
"""

import re
from typing import Any, Optional
from urllib.parse import urldefrag, urlparse

DEFAULT_SITE_ORIGIN = 'https://www.opentable.com'
DEFAULT_IMAGE_EXTENSION = '.jpg'

# resizer.otstatic.com/v2/photos/<size>/<bucket>/<asset>[.ext]
CDN_HOST_SUFFIX = 'otstatic.com'
CDN_RESIZE_PATTERN = re.compile(r'/v\d+/photos/[^/]+/(\d+)/(\d+)(?:\.[a-z0-9]+)?$', re.IGNORECASE)
CDN_CANONICAL_TEMPLATE = 'https://resizer.otstatic.com/v2/photos/xlarge/{bucket}/{asset}' + DEFAULT_IMAGE_EXTENSION


def normalize_url(value: Any, site_origin: str = DEFAULT_SITE_ORIGIN) -> Optional[str]:
    """
    Canonicalize a link found in a fragment

    Absolute http(s) links pass through, protocol-relative links get
    ``https:``, site-root-relative links get the site origin. Anything
    else (relative paths, ``javascript:``, non-strings) is rejected.
    The fragment part is always dropped.
    """
    if not isinstance(value, str):
        return None

    value = value.strip()
    if not value:
        return None

    lowered = value.lower()
    if lowered.startswith('http://') or lowered.startswith('https://'):
        url = value
    elif value.startswith('//'):
        url = 'https:' + value
    elif value.startswith('/'):
        url = site_origin.rstrip('/') + value
    else:
        return None

    url, _ = urldefrag(url)
    return url or None


def normalize_image_url(value: Any, site_origin: str = DEFAULT_SITE_ORIGIN) -> Optional[str]:
    """
    Canonicalize an image link

    Resizer CDN links are rewritten to the large variant of the same
    asset. Paths without a file extension get the default one.
    """
    url = normalize_url(value, site_origin)
    if not url:
        return None

    parsed = urlparse(url)
    if parsed.netloc.lower().endswith(CDN_HOST_SUFFIX):
        match = CDN_RESIZE_PATTERN.search(parsed.path)
        if match:
            return CDN_CANONICAL_TEMPLATE.format(bucket=match.group(1), asset=match.group(2))

    last_segment = parsed.path.rsplit('/', 1)[-1]
    if last_segment and '.' not in last_segment:
        url = parsed._replace(path=parsed.path + DEFAULT_IMAGE_EXTENSION).geturl()

    return url


def canonical_listing_url(identity: Optional[str], site_origin: str = DEFAULT_SITE_ORIGIN) -> Optional[str]:
    """Profile link synthesized from a listing id, used only as a last resort"""
    if not identity:
        return None
    return f"{site_origin.rstrip('/')}/r/{identity}"
