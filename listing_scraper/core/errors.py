"""
Exception hierarchy for the listing scraper
"""


class ListingScraperError(Exception):
    """Base class for all listing scraper errors"""


class ConfigError(ListingScraperError):
    """Raised when query input or settings are invalid"""


class BrowserUnavailableError(ListingScraperError):
    """Raised when the rendering browser cannot be started"""


class BrowserSessionError(ListingScraperError):
    """Raised when a running page fails (navigation, evaluation, scrolling)"""


class PaginationInferenceError(ListingScraperError):
    """
    Raised when a template has no recognizable pagination parameter.

    Replaying an unmodified request would fetch the same page forever,
    so callers treat this as a stop condition.
    """

    def __init__(self, message: str, page: int):
        super().__init__(message)
        self.page = page


class ReplayTransportError(ListingScraperError):
    """Raised when a replayed API call fails at the transport level"""
