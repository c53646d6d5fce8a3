# rulescraper/exceptions.py
"""
Structural failures that abort a whole scrape. Field-level problems are
logged and absorbed by the engine instead of raised.
"""


class RuleScraperError(Exception):
    """Base class for errors raised by the rule scraper."""


class FetchError(RuleScraperError):
    """A URL could not be turned into a parsed document."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url


class RuleFileError(RuleScraperError):
    """A rule file or stored rule set could not be read or validated."""


class DownloadError(RuleScraperError):
    """A single resource could not be downloaded."""
