# rulescraper/rule_store.py
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, List, Optional

import yaml
from pydantic import ValidationError
from pymongo import MongoClient

from .exceptions import RuleFileError
from .rule_models import ExtractionRule, SiteRules, rules_to_data, site_rules_to_data

logger = logging.getLogger(__name__)

RULE_FILE_EXTENSIONS = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}


def _parse_rules(raw: Any, source: str) -> List[ExtractionRule]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise RuleFileError(f"{source}: expected a list of rules, got {type(raw).__name__}")
    try:
        return [ExtractionRule.model_validate(item) for item in raw]
    except ValidationError as e:
        raise RuleFileError(f"{source}: invalid rule definition: {e}") from e


def _read_file(path: str, kind: str) -> Any:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            if kind == "json":
                return json.load(f)
            return yaml.safe_load(f)
    except FileNotFoundError as e:
        raise RuleFileError(f"Rule file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise RuleFileError(f"JSON parsing error in {path}: {e}") from e
    except yaml.YAMLError as e:
        raise RuleFileError(f"YAML parsing error in {path}: {e}") from e


def _file_kind(path: str) -> str:
    kind = RULE_FILE_EXTENSIONS.get(os.path.splitext(path)[1].lower())
    if kind is None:
        raise RuleFileError(f"Unsupported rule file extension: {path}")
    return kind


# --- JSON / YAML files ---

def save_rules_json(rules: List[ExtractionRule], path: str) -> None:
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(rules_to_data(rules), f, indent=2, ensure_ascii=False)


def load_rules_json(path: str) -> List[ExtractionRule]:
    return _parse_rules(_read_file(path, "json"), path)


def save_rules_yaml(rules: List[ExtractionRule], path: str) -> None:
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(rules_to_data(rules), f, sort_keys=False, allow_unicode=True)


def load_rules_yaml(path: str) -> List[ExtractionRule]:
    return _parse_rules(_read_file(path, "yaml"), path)


def load_rules_file(path: str) -> List[ExtractionRule]:
    return _parse_rules(_read_file(path, _file_kind(path)), path)


def load_rules_dir(dir_path: str) -> List[ExtractionRule]:
    """All JSON/YAML rule files under ``dir_path`` (recursively, sorted by path), concatenated."""
    if not os.path.isdir(dir_path):
        raise RuleFileError(f"Rule directory not found: {dir_path}")
    all_rules: List[ExtractionRule] = []
    for root, dirs, files in os.walk(dir_path):
        dirs.sort()
        for file_name in sorted(files):
            path = os.path.join(root, file_name)
            if os.path.splitext(file_name)[1].lower() not in RULE_FILE_EXTENSIONS:
                continue
            loaded = load_rules_file(path)
            logger.debug(f"Loaded {len(loaded)} rules from {path}")
            all_rules.extend(loaded)
    logger.info(f"Loaded {len(all_rules)} rules from directory {dir_path}")
    return all_rules


def load_site_rules(path: str) -> SiteRules:
    """
    A rule file holds either a bare list of rule trees or one object with
    ``host``/``rules``/``mapping``. Directories load as bare lists.
    """
    if os.path.isdir(path):
        return SiteRules(rules=load_rules_dir(path))
    raw = _read_file(path, _file_kind(path))
    if isinstance(raw, dict):
        try:
            return SiteRules.model_validate(raw)
        except ValidationError as e:
            raise RuleFileError(f"{path}: invalid site rules: {e}") from e
    return SiteRules(rules=_parse_rules(raw, path))


def save_site_rules(site: SiteRules, path: str) -> None:
    kind = _file_kind(path)
    data = site_rules_to_data(site)
    with open(path, 'w', encoding='utf-8') as f:
        if kind == "json":
            json.dump(data, f, indent=2, ensure_ascii=False)
        else:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)


# --- Keyed document store ---

class RuleStore:
    """Rule sets stored one document per key: {_id: key, rules: [...], ts: datetime}."""

    def __init__(self, collection, logger_instance=None):
        self.collection = collection
        self.logger = logger_instance if logger_instance else logger

    @classmethod
    def from_uri(cls, uri: str, database: str, collection: str, logger_instance=None) -> "RuleStore":
        client = MongoClient(uri)
        return cls(client[database][collection], logger_instance=logger_instance)

    def save(self, key: str, rules: List[ExtractionRule]) -> None:
        document = {"_id": key, "rules": rules_to_data(rules), "ts": datetime.now(timezone.utc)}
        self.collection.update_one({"_id": key}, {"$set": document}, upsert=True)
        self.logger.info(f"Stored {len(rules)} rules under key '{key}'")

    def load(self, key: str) -> List[ExtractionRule]:
        document: Optional[dict] = self.collection.find_one({"_id": key})
        if document is None:
            raise RuleFileError(f"No rules stored under key '{key}'")
        return _parse_rules(document.get("rules"), f"store key '{key}'")
