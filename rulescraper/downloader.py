# rulescraper/downloader.py
import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Sequence
from urllib.parse import unquote, urlparse

import requests

import config
from .exceptions import DownloadError
from .placeholders import PlaceholderResolver, has_placeholders
from .result import Result
from .rule_models import ExtractionRule

logger = logging.getLogger(__name__)

# How often a blocked dispatcher re-checks the cancel event
_ACQUIRE_POLL_SECONDS = 0.1


def remove_duplicate_ext(filename: str) -> str:
    """'photo.jpg.jpg' -> 'photo.jpg'"""
    base, ext = os.path.splitext(filename)
    if not ext:
        return filename
    if base.endswith(ext):
        return remove_duplicate_ext(base)
    return filename


def _file_name_for(raw_url: str) -> str:
    path = unquote(urlparse(raw_url).path)
    filename = os.path.basename(path.rstrip("/")) if path.strip("/") else ""
    if not filename:
        filename = str(time.time_ns())
    return remove_duplicate_ext(filename)


class ResourceDownloader:
    def __init__(self, session: Optional[requests.Session] = None, timeout: int = config.DEFAULT_REQUEST_TIMEOUT,
                 resolver: Optional[PlaceholderResolver] = None, cancel_event: Optional[threading.Event] = None,
                 logger_instance=None):
        self.logger = logger_instance if logger_instance else logger
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": config.USER_AGENT})
        self.timeout = timeout
        self.resolver = resolver or PlaceholderResolver()
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self):
        self.cancel_event.set()

    def download_resource(self, raw_url: str, save_dir: str) -> str:
        """
        Fetch one URL into ``save_dir`` and return the local path. Existing
        files are reused. The body is streamed to a ``.part`` file that only
        replaces the final name once the transfer completes.
        """
        try:
            parsed = urlparse(raw_url)
            parsed.port  # raises ValueError on malformed netloc
        except ValueError as e:
            raise DownloadError(f"malformed url {raw_url!r}: {e}") from e
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise DownloadError(f"not a downloadable url: {raw_url!r}")

        save_dir = save_dir or "./"
        out_path = os.path.join(save_dir, _file_name_for(raw_url))
        if os.path.exists(out_path):
            self.logger.debug(f"Reusing existing download {out_path}")
            return out_path

        part_path = out_path + ".part"
        try:
            with self.session.get(raw_url, timeout=self.timeout, stream=True) as response:
                if response.status_code != 200:
                    raise DownloadError(f"bad status downloading {raw_url}: {response.status_code}")
                os.makedirs(save_dir, exist_ok=True)
                with open(part_path, "wb") as f:
                    for chunk in response.iter_content(chunk_size=config.DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
            os.replace(part_path, out_path)
        except requests.exceptions.RequestException as req_err:
            self._discard(part_path)
            raise DownloadError(f"request error downloading {raw_url}: {req_err}") from req_err
        except OSError as os_err:
            self._discard(part_path)
            raise DownloadError(f"could not write {out_path}: {os_err}") from os_err
        return out_path

    def _discard(self, path: str):
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"Could not remove partial download {path}: {e}")

    def _download_into(self, slots: List[str], position: int, raw_url: str, save_dir: str,
                       semaphore: threading.Semaphore):
        try:
            slots[position] = self.download_resource(raw_url, save_dir)
        except (DownloadError, ValueError, OSError) as e:
            self.logger.error(f"Download {position} failed: {e}")
        finally:
            semaphore.release()

    def _acquire(self, semaphore: threading.Semaphore) -> bool:
        while not self.cancel_event.is_set():
            if semaphore.acquire(timeout=_ACQUIRE_POLL_SECONDS):
                return True
        return False

    def download_batch(self, urls: Sequence[str], save_dir: str, concurrency: int) -> List[str]:
        """
        Download ``urls`` with at most ``concurrency`` transfers in flight.
        Output slot i always belongs to urls[i]; failures leave "" in their slot.
        """
        concurrency = max(1, concurrency)
        slots = [""] * len(urls)
        if not urls:
            return slots
        semaphore = threading.Semaphore(concurrency)
        futures = []
        with ThreadPoolExecutor(max_workers=concurrency) as executor:
            for position, raw_url in enumerate(urls):
                if not self._acquire(semaphore):
                    self.logger.warning(f"Download batch cancelled, {len(urls) - position} URLs not dispatched")
                    break
                futures.append(executor.submit(self._download_into, slots, position, raw_url, save_dir, semaphore))
            wait(futures)
        for future in futures:
            error = future.exception()
            if error is not None:
                self.logger.error(f"Download worker failed unexpectedly: {error!r}")
        self.logger.info(f"Downloaded {sum(1 for s in slots if s)}/{len(urls)} resources into {save_dir or './'}")
        return slots

    def _rule_dir(self, rule: ExtractionRule, base_dir: str) -> str:
        directory = base_dir
        if rule.save_dir:
            directory = os.path.join(base_dir, rule.save_dir) if base_dir else rule.save_dir
        if has_placeholders(directory):
            directory = self.resolver.resolve(directory, 0)
        return directory

    def _download_record_links(self, records: List[Result], attr: str, directory: str, concurrency: int):
        """Record rules flagged for download keep their link under ``attr``; swap it for the local path."""
        owners = [record for record in records if isinstance(record.get(attr), str) and record.get(attr)]
        paths = self.download_batch([record[attr] for record in owners], directory, concurrency)
        for record, path in zip(owners, paths):
            record[attr] = path

    def download_results(self, result: Result, rules: Sequence[ExtractionRule], base_dir: str = "",
                         concurrency: int = config.MAX_CONCURRENT_DOWNLOADS) -> Result:
        """Replace every download-flagged field of ``result`` with local file paths, recursing into children."""
        active = [rule for rule in rules if rule.download or rule.children]
        directories: Dict[str, str] = {rule.name: self._rule_dir(rule, base_dir) for rule in active}

        for rule in active:
            directory = directories[rule.name]
            if rule.download and rule.is_leaf:
                urls = result.get_string_list(rule.name)
                result[rule.name] = self.download_batch(urls, directory, concurrency)
                continue

            if rule.multiple:
                records = result.get_result_list(rule.name)
                if records is None:
                    continue
                if rule.download and rule.attr:
                    self._download_record_links(records, rule.attr, directory, concurrency)
                result[rule.name] = [self.download_results(record, rule.children, directory, concurrency)
                                     for record in records]
            else:
                record = result.get_result(rule.name)
                if record is None:
                    continue
                if rule.download and rule.attr:
                    self._download_record_links([record], rule.attr, directory, concurrency)
                result[rule.name] = self.download_results(record, rule.children, directory, concurrency)
        return result


def download_results(result: Result, rules: Sequence[ExtractionRule], base_dir: str = "",
                     concurrency: int = config.MAX_CONCURRENT_DOWNLOADS,
                     cancel_event: Optional[threading.Event] = None) -> Result:
    return ResourceDownloader(cancel_event=cancel_event).download_results(result, rules, base_dir, concurrency)
