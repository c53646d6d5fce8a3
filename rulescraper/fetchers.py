# rulescraper/fetchers.py
import hashlib
import logging
import os
import re
from typing import Dict, Optional
from urllib.parse import urlparse

import requests

import config
from .exceptions import FetchError
from .selection import Document

logger = logging.getLogger(__name__)


def file_name_from_url(raw_url: str) -> str:
    """Stable cache file name: host + path, index.html for directories, short query hash."""
    parsed = urlparse(raw_url)
    if not parsed.netloc:
        raise ValueError(f"invalid url {raw_url!r}")
    path = parsed.path
    if not path or path.endswith("/"):
        path = path + "index.html" if path else "/index.html"
    base = (parsed.hostname or "") + path
    if parsed.query:
        digest = hashlib.sha1(parsed.query.encode("utf-8")).hexdigest()[:10]
        base = f"{base}_{digest}"
    name = base.replace("/", "_")
    return re.sub(r"[^\w.\-]", "_", name)


class PageCache:
    """On-disk store of raw page bodies keyed by URL. Disabled caches are pass-through."""

    def __init__(self, directory: str = config.PAGE_CACHE_DIR, enabled: bool = config.PAGE_CACHE_ENABLED):
        self.directory = directory
        self.enabled = enabled

    def _path(self, url: str) -> str:
        return os.path.join(self.directory, file_name_from_url(url))

    def get(self, url: str) -> Optional[bytes]:
        if not self.enabled:
            return None
        try:
            path = self._path(url)
        except ValueError:
            return None
        if not os.path.exists(path):
            return None
        with open(path, "rb") as f:
            logger.debug(f"Page cache hit for {url}")
            return f.read()

    def put(self, url: str, data: bytes) -> None:
        if not self.enabled or data is None:
            return
        try:
            path = self._path(url)
            os.makedirs(self.directory, exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not write page cache entry for {url}: {e}")


class Fetcher:
    """Turns a URL into a parsed Document. Subclasses provide ``_request``."""

    name = "base"

    def __init__(self, session: Optional[requests.Session] = None, timeout: int = config.DEFAULT_REQUEST_TIMEOUT,
                 cache: Optional[PageCache] = None, logger_instance=None):
        self.logger = logger_instance if logger_instance else logger
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": config.USER_AGENT})
        self.timeout = timeout
        self.cache = cache

    def _request(self, page_url: str) -> requests.Response:
        raise NotImplementedError

    def fetch(self, page_url: str) -> Document:
        cached = self.cache.get(page_url) if self.cache else None
        if cached is not None:
            return Document(cached, url=page_url)

        self.logger.info(f"Fetching URL: {page_url} with {self.__class__.__name__}")
        try:
            response = self._request(page_url)
        except requests.exceptions.Timeout:
            raise FetchError(page_url, f"timeout after {self.timeout}s")
        except requests.exceptions.RequestException as req_err:
            raise FetchError(page_url, f"request error: {req_err}")

        if response.status_code != 200:
            raise FetchError(page_url, f"{self.name} error status: {response.status_code}")

        content_bytes = response.content
        if self.cache:
            self.cache.put(page_url, content_bytes)
        return Document(content_bytes, url=page_url)


class RequestsFetcher(Fetcher):
    name = "direct"

    def _request(self, page_url: str) -> requests.Response:
        return self.session.get(page_url, timeout=self.timeout, allow_redirects=True)


class ZenRowsFetcher(Fetcher):
    name = "zenrows"

    def __init__(self, api_key: str = config.ZENROWS_API_KEY, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key

    def _request(self, page_url: str) -> requests.Response:
        params = {"apikey": self.api_key, "url": page_url}
        return self.session.get(config.ZENROWS_API_URL, params=params, timeout=self.timeout)


class ScraperAPIFetcher(Fetcher):
    """ScraperAPI handles proxies, CAPTCHAs and retries on its side."""

    name = "scraperapi"

    def __init__(self, api_key: str = config.SCRAPERAPI_API_KEY, premium: bool = False,
                 render_js: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.premium = premium
        self.render_js = render_js

    def _request(self, page_url: str) -> requests.Response:
        params: Dict[str, str] = {"api_key": self.api_key, "url": page_url}
        if self.premium:
            params["premium"] = "true"
        if self.render_js:
            params["render"] = "true"
        return self.session.get(config.SCRAPERAPI_API_URL, params=params, timeout=self.timeout)


class ScrapingBeeFetcher(Fetcher):
    name = "scrapingbee"

    def __init__(self, api_key: str = config.SCRAPINGBEE_API_KEY, javascript: bool = False,
                 block_ads: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.javascript = javascript
        self.block_ads = block_ads

    def _request(self, page_url: str) -> requests.Response:
        params: Dict[str, str] = {"api_key": self.api_key, "url": page_url}
        if self.javascript:
            params["javascript"] = "true"
        if self.block_ads:
            params["block_ads"] = "true"
        return self.session.get(config.SCRAPINGBEE_API_URL, params=params, timeout=self.timeout)


FETCHER_TYPES = {
    RequestsFetcher.name: RequestsFetcher,
    ZenRowsFetcher.name: ZenRowsFetcher,
    ScraperAPIFetcher.name: ScraperAPIFetcher,
    ScrapingBeeFetcher.name: ScrapingBeeFetcher,
}


def create_fetcher(kind: str = "direct", api_key: Optional[str] = None, cache: Optional[PageCache] = None,
                   **kwargs) -> Fetcher:
    fetcher_cls = FETCHER_TYPES.get(kind)
    if fetcher_cls is None:
        raise ValueError(f"Unknown fetcher '{kind}'. Supported: {sorted(FETCHER_TYPES)}")
    if api_key and fetcher_cls is not RequestsFetcher:
        kwargs["api_key"] = api_key
    return fetcher_cls(cache=cache, **kwargs)
