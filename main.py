#!/usr/bin/env python3
"""
Rule Scraper - Command Line Entry Point

Scrape one page with a rule file, optionally remap and download the result,
and emit JSON. Exits nonzero only when the page or the rule file cannot be
loaded; missing fields never fail the run.
"""

import argparse
import json
import sys

import config
from rulescraper.downloader import ResourceDownloader
from rulescraper.evaluator import scrape
from rulescraper.exceptions import RuleScraperError
from rulescraper.fetchers import FETCHER_TYPES, PageCache, create_fetcher
from rulescraper.progress import RuleProgress
from rulescraper.remapper import Remapper
from rulescraper.rule_store import load_site_rules
from storage.saver import default_output_path, write_json_output, write_jsonl
from utils.logger import attach_library_logger, setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Rule Scraper - declarative extraction and remapping")
    parser.add_argument("url", help="Page URL to scrape")
    parser.add_argument("rules", help="Rule file (.json/.yaml) or directory of rule files")
    parser.add_argument("--output", "-o", type=str, help="Write JSON here instead of stdout")
    parser.add_argument("--jsonl", action="store_true", help="Append the output as one JSONL line")
    parser.add_argument("--export", action="store_true",
                        help=f"Write JSON to a timestamped file under {config.DEFAULT_EXPORT_DIR}")
    parser.add_argument("--fetcher", choices=sorted(FETCHER_TYPES), default="direct",
                        help="Fetcher backend: direct or a proxy service")
    parser.add_argument("--api-key", type=str, help="API key for proxy-backed fetchers")
    parser.add_argument("--cache", action="store_true", default=config.PAGE_CACHE_ENABLED,
                        help="Cache fetched pages on disk")
    parser.add_argument("--cache-dir", type=str, default=config.PAGE_CACHE_DIR)
    parser.add_argument("--download", action="store_true", help="Download fields flagged with 'download'")
    parser.add_argument("--download-dir", type=str, default=config.DEFAULT_DOWNLOAD_DIR)
    parser.add_argument("--concurrency", type=int, default=config.MAX_CONCURRENT_DOWNLOADS,
                        help="Maximum parallel downloads per rule")
    parser.add_argument("--no-remap", action="store_true", help="Ignore mapping directives in the rule file")
    parser.add_argument("--progress", action="store_true", help="Show a progress bar on stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {config.VERSION}")
    return parser


def run(args) -> int:
    logger = setup_logger(name=config.APP_NAME)
    attach_library_logger(logger)
    logger.info(f"Starting scrape of {args.url} with rules from {args.rules}")

    try:
        site = load_site_rules(args.rules)
        fetcher = create_fetcher(args.fetcher, api_key=args.api_key,
                                 cache=PageCache(args.cache_dir, enabled=args.cache))
        result = scrape(fetcher, args.url, site.rules, RuleProgress(show_bar=args.progress))
    except (RuleScraperError, ValueError) as e:
        logger.error(f"Scrape failed: {e}")
        return 1

    if args.download:
        ResourceDownloader().download_results(result, site.rules, args.download_dir, args.concurrency)

    output = result
    if site.mapping and not args.no_remap:
        root, objects = Remapper().remap_with_objects(result, site.mapping)
        output = root
        if objects:
            output = dict(root)
            output.update(objects)

    if args.export and not args.output:
        args.output = default_output_path(args.url)

    if args.output and args.jsonl:
        write_jsonl([output], args.output)
    elif args.output:
        write_json_output(output, args.output)
    else:
        sys.stdout.write(json.dumps(output, indent=2, ensure_ascii=False) + "\n")
    return 0


def main(argv=None):
    args = build_parser().parse_args(argv)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
