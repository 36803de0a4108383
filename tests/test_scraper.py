import asyncio
import json

from listing_scraper.core.config import ScraperSettings, SearchQuery
from listing_scraper.core.errors import BrowserSessionError
from listing_scraper.core.models import InterceptedResponse, PageSnapshot, ReplayResponse
from listing_scraper.core.scraper import ListingScraper
from listing_scraper.core.sinks import MemorySink

GQL_URL = 'https://www.opentable.com/dapi/fe/gql?optype=query&opname=RestaurantsAvailability'


class FakeFetcher:
    """Plays back a fixed sequence of snapshots; the last one repeats"""

    def __init__(self, snapshots, status=200):
        self.snapshots = list(snapshots)
        self.status = status
        self.opened = []
        self.scrolls = 0
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True

    async def open(self, url):
        self.opened.append(url)
        return self.status

    async def snapshot(self):
        if len(self.snapshots) > 1:
            return self.snapshots.pop(0)
        return self.snapshots[0]

    async def scroll_to_bottom(self):
        self.scrolls += 1

    async def cookies(self):
        return [{'name': 'otSessionId', 'value': 'abc', 'domain': '.opentable.com', 'path': '/'}]


class FakeExecutor:
    def __init__(self, pages):
        self.pages = pages
        self.requests = []
        self.closed = False

    async def execute(self, request):
        self.requests.append(request)
        return ReplayResponse(status=200, body=json.dumps(self.pages.get(request.page, {})))

    def close(self):
        self.closed = True


def state_snapshot(listings, html='<html><body>Restaurants</body></html>'):
    return PageSnapshot(
        url='https://www.opentable.com/s?term=chicago',
        html=html,
        namespaces={'__INITIAL_STATE__': {'lolzViewAll': {'searchResults': {'restaurants': listings}}}},
    )


def build_scraper(fetcher, query, executor=None, cancel_event=None, **settings):
    sink = MemorySink()
    scraper = ListingScraper(
        query,
        settings=ScraperSettings(**settings),
        sink=sink,
        cancel_event=cancel_event,
        fetcher_factory=lambda _settings: fetcher,
        executor_factory=lambda cookies: executor,
    )
    return scraper, sink


def test_api_replay_strategy(make_listing, availability_body):
    variables = {'term': 'chicago', 'date': '2026-11-01', 'partySize': 2, 'pageNumber': 1, 'pageSize': 20}
    response = InterceptedResponse(
        url=GQL_URL,
        method='POST',
        request_body=json.dumps({'operationName': 'RestaurantsAvailability', 'variables': variables}),
        request_headers={'content-type': 'application/json', 'cookie': 'secret'},
        body=availability_body([make_listing(i) for i in range(20)], total=45),
    )
    fetcher = FakeFetcher([PageSnapshot(url='https://www.opentable.com/s?term=chicago', responses=[response])])
    executor = FakeExecutor({
        2: availability_body([make_listing(i) for i in range(20, 40)], total=45),
        3: availability_body([make_listing(i) for i in range(40, 45)], total=45),
    })
    scraper, sink = build_scraper(fetcher, SearchQuery(location='chicago', results_wanted=100), executor)

    report = asyncio.run(scraper.run())

    assert report['strategy'] == 'api_replay'
    assert report['stop_reason'] == 'server_total_reached'
    assert report['emitted'] == 45
    assert report['pages'] == 3
    assert report['reported_total'] == 45
    assert not report['interstitial']
    assert len(sink.rows) == 45
    assert [r.page for r in executor.requests] == [2, 3]
    assert 'cookie' not in executor.requests[0].headers
    assert executor.closed
    assert fetcher.closed


def test_scroll_strategy_stops_after_idle_scrolls(make_listing):
    first = state_snapshot([make_listing(i) for i in range(10)])
    grown = state_snapshot([make_listing(i) for i in range(20)])
    fetcher = FakeFetcher([first, grown])
    scraper, sink = build_scraper(fetcher, SearchQuery(location='chicago', results_wanted=100), max_scrolls=2)

    report = asyncio.run(scraper.run())

    assert report['strategy'] == 'scroll'
    assert report['stop_reason'] == 'stalled'
    assert report['emitted'] == 20
    assert fetcher.scrolls == 3
    assert report['pages'] == 4
    assert len(sink.rows) == 20


def test_first_page_can_satisfy_the_query(make_listing):
    fetcher = FakeFetcher([state_snapshot([make_listing(i) for i in range(10)])])
    scraper, sink = build_scraper(fetcher, SearchQuery(location='chicago', results_wanted=5))

    report = asyncio.run(scraper.run())

    assert report['strategy'] == 'single_page'
    assert report['stop_reason'] == 'target_reached'
    assert report['emitted'] == 5
    assert [row['restaurant_id'] for row in sink.rows] == ['0', '1', '2', '3', '4']
    assert fetcher.opened == [SearchQuery(location='chicago').search_url()]


def test_cancellation_after_first_page(make_listing):
    cancel_event = asyncio.Event()
    cancel_event.set()
    fetcher = FakeFetcher([state_snapshot([make_listing(i) for i in range(10)])])
    scraper, sink = build_scraper(fetcher, SearchQuery(location='chicago', results_wanted=50), cancel_event=cancel_event)

    report = asyncio.run(scraper.run())

    assert report['stop_reason'] == 'cancelled'
    assert report['emitted'] == 10
    assert fetcher.scrolls == 0


def test_interstitial_is_reported_but_extraction_continues(make_listing):
    html = '<html><body><h1>Please verify you are human</h1></body></html>'
    fetcher = FakeFetcher([state_snapshot([make_listing(i) for i in range(3)], html=html)])
    scraper, _ = build_scraper(fetcher, SearchQuery(location='chicago', results_wanted=3))

    report = asyncio.run(scraper.run())

    assert report['interstitial']
    assert report['emitted'] == 3


def test_no_continuation_when_scrolling_disabled(make_listing):
    fetcher = FakeFetcher([state_snapshot([make_listing(i) for i in range(3)])])
    scraper, _ = build_scraper(fetcher, SearchQuery(location='chicago', results_wanted=10), max_scrolls=0)

    report = asyncio.run(scraper.run())

    assert report['strategy'] == 'single_page'
    assert report['stop_reason'] == 'no_continuation'
    assert report['emitted'] == 3


class FailingFetcher(FakeFetcher):
    """FakeFetcher whose page breaks at a chosen step"""

    def __init__(self, snapshots, fail_on, fail_snapshot_at=1):
        super().__init__(snapshots)
        self.fail_on = fail_on
        self.fail_snapshot_at = fail_snapshot_at
        self.snapshots_taken = 0

    async def open(self, url):
        if self.fail_on == 'open':
            self.opened.append(url)
            raise BrowserSessionError('Navigation failed: net::ERR_CONNECTION_RESET')
        return await super().open(url)

    async def snapshot(self):
        self.snapshots_taken += 1
        if self.fail_on == 'snapshot' and self.snapshots_taken >= self.fail_snapshot_at:
            raise BrowserSessionError('Snapshot failed: Execution context was destroyed')
        return await super().snapshot()

    async def scroll_to_bottom(self):
        if self.fail_on == 'scroll':
            raise BrowserSessionError('Scroll failed: Execution context was destroyed')
        await super().scroll_to_bottom()


def test_failed_scroll_keeps_first_page_records(make_listing):
    fetcher = FailingFetcher([state_snapshot([make_listing(i) for i in range(5)])], fail_on='scroll')
    scraper, sink = build_scraper(fetcher, SearchQuery(location='chicago', results_wanted=50))

    report = asyncio.run(scraper.run())

    assert report['strategy'] == 'scroll'
    assert report['stop_reason'] == 'browser_error'
    assert report['emitted'] == 5
    assert report['pages'] == 1
    assert len(sink.rows) == 5
    assert fetcher.closed


def test_failed_snapshot_while_scrolling_keeps_records(make_listing):
    first = state_snapshot([make_listing(i) for i in range(5)])
    fetcher = FailingFetcher([first], fail_on='snapshot', fail_snapshot_at=2)
    scraper, sink = build_scraper(fetcher, SearchQuery(location='chicago', results_wanted=50))

    report = asyncio.run(scraper.run())

    assert report['stop_reason'] == 'browser_error'
    assert report['emitted'] == 5
    assert fetcher.scrolls == 1
    assert len(sink.rows) == 5


def test_failed_first_snapshot_is_an_extraction_miss(make_listing):
    fetcher = FailingFetcher([state_snapshot([make_listing(i) for i in range(5)])], fail_on='snapshot')
    scraper, sink = build_scraper(fetcher, SearchQuery(location='chicago', results_wanted=50))

    report = asyncio.run(scraper.run())

    assert report['stop_reason'] == 'browser_error'
    assert report['emitted'] == 0
    assert sink.rows == []
    assert fetcher.closed


def test_failed_navigation_still_extracts_what_loaded(make_listing):
    fetcher = FailingFetcher([state_snapshot([make_listing(i) for i in range(5)])], fail_on='open')
    scraper, sink = build_scraper(fetcher, SearchQuery(location='chicago', results_wanted=5))

    report = asyncio.run(scraper.run())

    assert report['stop_reason'] == 'target_reached'
    assert report['emitted'] == 5
    assert len(sink.rows) == 5
