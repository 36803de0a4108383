from listing_scraper.core.html_cards import extract_dom_cards

SEARCH_HTML = """
<html><body>
<ul>
  <li>
    <a href="/r/cafe-one-chicago?corrid=abc"><img src="https://images.example.com/cafe-one.jpg"></a>
    <a href="/r/cafe-one-chicago?corrid=abc"><h3>Cafe One</h3></a>
    <div aria-label="4.5 stars"></div>
    <span>(1,234)</span>
  </li>
  <li>
    <a href="https://www.opentable.com/restaurant/profile/98765"><h3>Trattoria Due</h3></a>
    <span>87 reviews</span>
  </li>
  <li>
    <a href="/help">Help</a>
  </li>
</ul>
</body></html>
"""


def test_cards_are_scraped_from_profile_links():
    cards = extract_dom_cards(SEARCH_HTML)

    assert cards == [
        {
            'name': 'Cafe One',
            'url': 'https://www.opentable.com/r/cafe-one-chicago',
            'rating': 4.5,
            'reviewCount': 1234,
            'imageUrl': 'https://images.example.com/cafe-one.jpg',
        },
        {
            'name': 'Trattoria Due',
            'url': 'https://www.opentable.com/restaurant/profile/98765',
            'reviewCount': 87,
        },
    ]


def test_cards_use_configured_origin():
    html = '<article><a href="/r/pub-uk"><h2>The Pub</h2></a></article>'

    cards = extract_dom_cards(html, 'https://www.opentable.co.uk')

    assert cards == [{'name': 'The Pub', 'url': 'https://www.opentable.co.uk/r/pub-uk'}]


def test_empty_html_yields_no_cards():
    assert extract_dom_cards('') == []
    assert extract_dom_cards('<html><body><a href="/about">About</a></body></html>') == []
