# rulescraper/result.py
"""
Nested output of rule evaluation.

A field value is one of: a scalar (str/int/float/bool/None), a nested
``Result``/dict, or a list of those. ``classify`` tags a value with its
``ValueKind`` so consumers can branch exhaustively instead of probing types
ad hoc.
"""
import json
import logging
from enum import Enum
from typing import Any, List, Optional

logger = logging.getLogger(__name__)



class _Missing:
    """Sentinel for a path that does not exist (distinct from an explicit None)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "MISSING"

    def __bool__(self):
        return False


MISSING = _Missing()


class ValueKind(Enum):
    MISSING = "missing"
    SCALAR = "scalar"
    RECORD = "record"
    LIST = "list"


def classify(value: Any) -> ValueKind:
    if value is MISSING:
        return ValueKind.MISSING
    if isinstance(value, dict):
        return ValueKind.RECORD
    if isinstance(value, (list, tuple)):
        return ValueKind.LIST
    return ValueKind.SCALAR


def safe_string(value: Any) -> str:
    """Scalar to string for regex work; non-scalars and None become ''."""
    if isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    return ""


class Result(dict):
    """Ordered mapping from field name to extracted value."""

    def get_result(self, key: str) -> Optional["Result"]:
        value = self.get(key)
        if isinstance(value, Result):
            return value
        if isinstance(value, dict):
            return Result(value)
        return None

    def get_result_list(self, key: str) -> Optional[List["Result"]]:
        value = self.get(key)
        if not isinstance(value, list):
            return None
        records = []
        for item in value:
            if isinstance(item, Result):
                records.append(item)
            elif isinstance(item, dict):
                records.append(Result(item))
            else:
                logger.debug(f"Skipping non-record item under '{key}': {item!r}")
        return records

    def get_string_list(self, key: str, *sub_path: str) -> List[str]:
        """
        Flatten the value at ``key`` into a list of strings.

        A single string becomes a one-item list. With ``sub_path`` each list
        element is treated as a record and the nested value is read from it.
        """
        value = self.get(key, MISSING)
        kind = classify(value)
        if kind is ValueKind.MISSING:
            return []
        if kind is ValueKind.LIST:
            output = []
            for item in value:
                if sub_path:
                    nested = _dig(item, sub_path)
                    if nested is not MISSING:
                        output.append(nested if isinstance(nested, str) else json.dumps(nested))
                else:
                    text = safe_string(item)
                    if text:
                        output.append(text)
            return output
        if kind is ValueKind.SCALAR:
            text = safe_string(value)
            return [text] if text else []
        return []

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self, indent=indent, ensure_ascii=False)


def _dig(value: Any, path) -> Any:
    current = value
    for segment in path:
        if isinstance(current, dict) and segment in current:
            current = current[segment]
        else:
            return MISSING
    return current
