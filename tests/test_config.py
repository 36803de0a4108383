from urllib.parse import parse_qs, urlparse

import pytest

from listing_scraper.core.config import USER_AGENTS, ScraperSettings, SearchQuery
from listing_scraper.core.errors import ConfigError


def test_search_url_from_query_fields():
    query = SearchQuery(location='Chicago', date='2026-11-01', covers=4)

    parsed = urlparse(query.search_url())

    assert parsed.netloc == 'www.opentable.com'
    assert parsed.path == '/s'
    assert parse_qs(parsed.query) == {
        'dateTime': ['2026-11-01T19:00:00'],
        'covers': ['4'],
        'term': ['Chicago'],
    }


def test_search_url_uses_explicit_time_and_start_url():
    query = SearchQuery(location='Boston', date='2026-11-01', time='20:30')
    assert parse_qs(urlparse(query.search_url()).query)['dateTime'] == ['2026-11-01T20:30:00']

    start_url = 'https://www.opentable.com/s?term=sushi&covers=2'
    assert SearchQuery(start_url=start_url, location='ignored').search_url() == start_url


@pytest.mark.parametrize('kwargs', [
    {'date': '11/01/2026'},
    {'time': '7pm'},
    {'covers': 0},
    {'covers': 'two'},
])
def test_invalid_query_input_raises(kwargs):
    with pytest.raises(ConfigError):
        SearchQuery(location='Chicago', **kwargs)


@pytest.mark.parametrize('value,expected', [
    (35, 35),
    ('35', 35),
    (0, 1),
    (-5, 1),
    ('lots', 20),
    (None, 20),
    (float('nan'), 20),
])
def test_results_wanted_is_clamped(value, expected):
    assert SearchQuery(location='Chicago', results_wanted=value).results_wanted == expected


def test_query_from_actor_input():
    query = SearchQuery.from_actor_input({
        'location': 'Denver',
        'date': '2026-12-24',
        'time': '18:00',
        'covers': 6,
        'results_wanted': 50,
        'start_url': '',
    })

    assert query.start_url is None
    assert query.location == 'Denver'
    assert query.covers == 6
    assert query.results_wanted == 50


def test_settings_defaults():
    settings = ScraperSettings()

    assert settings.browser_type == 'firefox'
    assert settings.headless
    assert settings.stall_threshold == 2
    assert settings.max_scrolls == 20
    assert settings.user_agent in USER_AGENTS


def test_settings_validation():
    with pytest.raises(ConfigError):
        ScraperSettings(browser_type='opera')
    with pytest.raises(ConfigError):
        ScraperSettings(stall_threshold=0)
    with pytest.raises(ConfigError):
        ScraperSettings(max_depth=0)


def test_settings_from_actor_input():
    proxy = {'server': 'http://proxy.example.com:8000', 'username': 'u', 'password': 'p'}

    settings = ScraperSettings.from_actor_input({'headless': False, 'domFallback': True, 'maxScrolls': '5'}, proxy=proxy)

    assert not settings.headless
    assert settings.dom_fallback
    assert settings.max_scrolls == 5
    assert settings.proxy == proxy

    with pytest.raises(ConfigError):
        ScraperSettings.from_actor_input({'maxScrolls': 'many'})


def test_config_errors_keep_the_parse_failure():
    with pytest.raises(ConfigError) as covers_error:
        SearchQuery(location='Chicago', covers='two')
    with pytest.raises(ConfigError) as scrolls_error:
        ScraperSettings.from_actor_input({'maxScrolls': 'many'})

    assert isinstance(covers_error.value.__cause__, ValueError)
    assert isinstance(scrolls_error.value.__cause__, ValueError)
