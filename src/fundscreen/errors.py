"""Exceptions raised by the scrape pipeline and the store."""


class ScrapeError(Exception):
    """Base exception for a scrape invocation that produced no usable result."""
    pass


class FetchError(ScrapeError):
    """Raised when the results page cannot be fetched."""
    pass


class EmptyScrapeError(ScrapeError):
    """Raised when the page was fetched but no row could be extracted."""
    pass


class StockExistsError(Exception):
    """Raised when creating a descriptor for a ticker already stored."""

    def __init__(self, ticker: str):
        super().__init__(f"Stock {ticker} already exists")
        self.ticker = ticker
