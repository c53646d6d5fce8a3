# config.py - Main Configuration File for Rule Scraper

import os

# =============================================================================
# Application Settings
# =============================================================================
APP_NAME = "RuleScraper"
VERSION = "1.0.0"

# =============================================================================
# Logging Configuration
# =============================================================================
DEFAULT_LOGGER_NAME = "rule_scraper"
LOG_FILE_PATH = os.getenv("RULE_SCRAPER_LOG_FILE", "logs/rule_scraper.log")
LOG_LEVEL_CONSOLE = os.getenv("RULE_SCRAPER_LOG_LEVEL", "INFO")
LOG_LEVEL_FILE = "DEBUG"

# =============================================================================
# HTTP/Fetching Configuration
# =============================================================================
USER_AGENT = "RuleScraper/1.0 (+https://github.com/yourusername/rule-scraper)"
DEFAULT_REQUEST_TIMEOUT = int(os.getenv("RULE_SCRAPER_TIMEOUT", "30"))

# Proxy-backed fetchers
ZENROWS_API_URL = "https://api.zenrows.com/v1"
SCRAPERAPI_API_URL = "http://api.scraperapi.com/"
SCRAPINGBEE_API_URL = "https://app.scrapingbee.com/api/v1/"
ZENROWS_API_KEY = os.getenv("ZENROWS_API_KEY", "")
SCRAPERAPI_API_KEY = os.getenv("SCRAPERAPI_API_KEY", "")
SCRAPINGBEE_API_KEY = os.getenv("SCRAPINGBEE_API_KEY", "")

# =============================================================================
# Page Cache Configuration
# =============================================================================
PAGE_CACHE_ENABLED = os.getenv("RULE_SCRAPER_PAGE_CACHE", "false").lower() == "true"
PAGE_CACHE_DIR = os.getenv("RULE_SCRAPER_PAGE_CACHE_DIR", "./page_cache")

# =============================================================================
# Download Configuration
# =============================================================================
MAX_CONCURRENT_DOWNLOADS = int(os.getenv("RULE_SCRAPER_CONCURRENCY", "4"))
DEFAULT_DOWNLOAD_DIR = os.getenv("RULE_SCRAPER_DOWNLOAD_DIR", "./downloads")
DOWNLOAD_CHUNK_SIZE = 64 * 1024

# =============================================================================
# Transform Configuration
# =============================================================================
# Applied to every scalar when a rule declares no transforms of its own
DEFAULT_TRANSFORMS = [
    {"match": "^//", "replace": "https://"},
]

# =============================================================================
# File Paths
# =============================================================================
DEFAULT_EXPORT_DIR = "./data_exports"

# =============================================================================
# Debug Settings
# =============================================================================
DEBUG_MODE = os.getenv("DEBUG", "false").lower() == "true"
VERBOSE_LOGGING = DEBUG_MODE
