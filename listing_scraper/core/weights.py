"""
Scoring weight tables

All heuristic constants used to rank candidate collections, API templates
and reconciliation complements live here so they can be tuned and tested
without touching traversal code.
"""

import re

# Per-record points used to rank arrays during a fallback scan
RICHNESS_WEIGHTS = {
    'name': 3,
    'identity': 2,
    'url_or_slug': 2,
    'price': 1,
    'rating': 1,
    'category': 1,
}

# Field coverage weights for candidate completeness.
# completeness = sum(weight * count) / record_count, roughly a 0..10 scale.
COMPLETENESS_WEIGHTS = {
    'url': 4,
    'rating': 2,
    'review_count': 2,
    'image': 1,
    'name': 1,
}

# Collections at or above this size get the full length bonus of 1.0
LENGTH_BONUS_SATURATION = 50

# Provenance adjustments for candidate collections
SOURCE_WEIGHTS = {
    'search_bonus': 3.0,
    'decoy_penalty': -15.0,
}

# Weights used to rank captured API templates
TEMPLATE_WEIGHTS = {
    'per_extracted_record': 2,
    'per_detail_item': 1,
    'search_operation': 60,
    'decoy_operation': -80,
    'post_method': 5,
    'location_variables': 10,
    'date_party_variables': 5,
}

# Points a secondary fragment earns for each field it can fill in
COMPLEMENT_WEIGHTS = {
    'url': 6,
    'image': 3,
    'rating': 2,
    'review_count': 2,
    'city': 1,
    'neighborhood': 1,
    'price': 1,
    'category': 1,
}

# Provenance tags and operation names that look like the real result set
SEARCH_PATTERN = re.compile(r'search|avail|result', re.IGNORECASE)

# Provenance tags and operation names that usually carry decoy listings
DECOY_PATTERN = re.compile(
    r'home|module|recommend|carousel|trending|personali[sz]ed|nearby|similar',
    re.IGNORECASE,
)
