import hashlib

import pytest
import requests

import config
from rulescraper.exceptions import FetchError
from rulescraper.fetchers import (
    PageCache,
    RequestsFetcher,
    ScraperAPIFetcher,
    ZenRowsFetcher,
    create_fetcher,
    file_name_from_url,
)


class FakeResponse:
    def __init__(self, status_code=200, content=b"<html><title>Hi</title><p>ok</p></html>"):
        self.status_code = status_code
        self.content = content


class FakeSession:
    def __init__(self, response=None, error=None):
        self.headers = {}
        self.response = response or FakeResponse()
        self.error = error
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def test_file_name_from_url():
    assert file_name_from_url("http://example.com/a/b.html") == "example.com_a_b.html"
    assert file_name_from_url("http://example.com/") == "example.com_index.html"
    assert file_name_from_url("http://example.com") == "example.com_index.html"
    digest = hashlib.sha1(b"page=2").hexdigest()[:10]
    assert file_name_from_url("http://example.com/list?page=2") == f"example.com_list_{digest}"
    with pytest.raises(ValueError):
        file_name_from_url("not a url")


def test_page_cache(tmp_path):
    cache = PageCache(str(tmp_path), enabled=True)
    assert cache.get("http://example.com/x") is None
    cache.put("http://example.com/x", b"body")
    assert cache.get("http://example.com/x") == b"body"

    disabled = PageCache(str(tmp_path), enabled=False)
    assert disabled.get("http://example.com/x") is None


def test_fetch_parses_document_and_sets_user_agent():
    session = FakeSession()
    fetcher = RequestsFetcher(session=session)
    document = fetcher.fetch("http://example.com")
    assert document.title == "Hi"
    assert document.url == "http://example.com"
    assert document.selection.query("p").text() == "ok"
    assert session.headers["User-Agent"] == config.USER_AGENT


def test_non_200_status_raises():
    fetcher = RequestsFetcher(session=FakeSession(FakeResponse(status_code=503)))
    with pytest.raises(FetchError) as exc_info:
        fetcher.fetch("http://example.com")
    assert exc_info.value.url == "http://example.com"


def test_request_errors_become_fetch_errors():
    fetcher = RequestsFetcher(session=FakeSession(error=requests.exceptions.ConnectionError("refused")))
    with pytest.raises(FetchError):
        fetcher.fetch("http://example.com")
    fetcher = RequestsFetcher(session=FakeSession(error=requests.exceptions.Timeout()))
    with pytest.raises(FetchError):
        fetcher.fetch("http://example.com")


def test_cache_hit_skips_network(tmp_path):
    cache = PageCache(str(tmp_path), enabled=True)
    session = FakeSession()
    fetcher = RequestsFetcher(session=session, cache=cache)
    fetcher.fetch("http://example.com/page")
    fetcher.fetch("http://example.com/page")
    assert len(session.calls) == 1


def test_proxy_fetchers_pass_target_url_as_parameter():
    session = FakeSession()
    ScraperAPIFetcher(api_key="KEY", premium=True, session=session).fetch("http://example.com")
    url, kwargs = session.calls[0]
    assert url == config.SCRAPERAPI_API_URL
    assert kwargs["params"] == {"api_key": "KEY", "url": "http://example.com", "premium": "true"}

    session = FakeSession()
    ZenRowsFetcher(api_key="Z", session=session).fetch("http://example.com")
    assert session.calls[0][1]["params"] == {"apikey": "Z", "url": "http://example.com"}


def test_create_fetcher():
    fetcher = create_fetcher("scrapingbee", api_key="B", session=FakeSession())
    assert fetcher.api_key == "B"
    assert isinstance(create_fetcher("direct", api_key="ignored", session=FakeSession()), RequestsFetcher)
    with pytest.raises(ValueError):
        create_fetcher("carrier-pigeon")
