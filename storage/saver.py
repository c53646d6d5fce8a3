# storage/saver.py
import json
import logging
import os
import re
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

import config

logger = logging.getLogger(__name__)


def _sanitize_filename(name: str, max_length: int = 100) -> str:
    """Sanitizes a string to be a valid filename component."""
    if not name:
        return "untitled"
    # Remove problematic characters
    name = re.sub(r'[<>:"/\\|?*\x00-\x1f]', '_', name)
    # Replace multiple spaces/underscores with a single underscore
    name = re.sub(r'[\s_]+', '_', name.strip())
    return name[:max_length]


def default_output_path(page_url: str, export_dir: str = config.DEFAULT_EXPORT_DIR) -> str:
    """<export_dir>/<sanitized page url>_<timestamp>.json"""
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return os.path.join(export_dir, f"{_sanitize_filename(page_url, max_length=80)}_{stamp}.json")


def write_json_output(data: Any, output_path: str, indent: Optional[int] = 2) -> str:
    """Writes one JSON document, creating parent directories as needed. Returns the path."""
    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=False)
    logger.info(f"Saved JSON output to {output_path}")
    return output_path


def write_jsonl(records: Iterable[Dict[str, Any]], output_path: str) -> int:
    """Appends one JSON object per line. Returns the number of records written."""
    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    count = 0
    with open(output_path, 'a', encoding='utf-8') as f:
        for record in records:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
            count += 1
    logger.info(f"Appended {count} records to {output_path}")
    return count
