# rulescraper/remapper.py
"""
Reshape an extraction Result with path-based mapping directives.

Source paths (``locate``):
    a.b        nested key
    a.0, a[0]  list element
    a.#.b      ``b`` collected from every element of ``a``
    a.#        number of elements in ``a``
    "" or "."  the value itself

Destination paths (``assign``) are dot-separated keys; the final segment may
carry a bracketed index (``a.b[2]``) selecting one element of a list value.
"""
import copy
import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .placeholders import PlaceholderResolver
from .result import MISSING, Result, ValueKind, classify
from .rule_models import Mapping

logger = logging.getLogger(__name__)

_INDEX_SUFFIX = re.compile(r"\[(\d+)\]$")


def _split_source_path(path: str) -> List[str]:
    normalized = path.replace("[", ".").replace("]", "")
    return [segment for segment in normalized.split(".") if segment != ""]


def _locate_segments(value: Any, segments: Sequence[str]) -> Any:
    if not segments:
        return value
    head, rest = segments[0], segments[1:]
    kind = classify(value)

    if head == "#":
        if kind is not ValueKind.LIST:
            return MISSING
        if not rest:
            return len(value)
        collected = []
        for item in value:
            found = _locate_segments(item, rest)
            if found is not MISSING:
                collected.append(found)
        return collected

    if kind is ValueKind.RECORD:
        if head not in value:
            return MISSING
        return _locate_segments(value[head], rest)
    if kind is ValueKind.LIST:
        if not head.isdigit():
            return MISSING
        position = int(head)
        if position >= len(value):
            return MISSING
        return _locate_segments(value[position], rest)
    return MISSING


def locate(source: Any, path: str) -> Any:
    """Value at ``path`` inside ``source``, or ``MISSING``."""
    if path in ("", "."):
        return source
    return _locate_segments(source, _split_source_path(path))


def assign(root: Dict[str, Any], path: str, value: Any) -> Dict[str, Any]:
    """
    Write ``value`` at ``path`` inside ``root``, creating intermediate dicts.

    A non-dict value already sitting on an intermediate segment aborts this
    assignment only; ``root`` is returned unchanged in that case.
    """
    keys = path.split(".")
    current = root
    for key in keys[:-1]:
        if key not in current:
            current[key] = {}
        next_level = current[key]
        if not isinstance(next_level, dict):
            logger.warning(f"Remap path '{path}' failed: key '{key}' is not a map")
            return root
        current = next_level

    last = keys[-1]
    index_match = _INDEX_SUFFIX.search(last)
    if index_match is None:
        current[last] = value
        return root

    key = last[:index_match.start()]
    position = int(index_match.group(1))
    if isinstance(value, list) and position < len(value):
        current[key] = value[position]
    else:
        current[key] = value
    return root


class Remapper:
    def __init__(self, resolver: Optional[PlaceholderResolver] = None, logger_instance=None):
        self.resolver = resolver or PlaceholderResolver()
        self.logger = logger_instance if logger_instance else logger

    def remap(self, source: Any, mappings: Sequence[Mapping]) -> Result:
        root, _ = self.remap_with_objects(source, mappings)
        return root

    def remap_with_objects(self, source: Any, mappings: Sequence[Mapping]) -> Tuple[Result, Dict[str, Result]]:
        """Apply every directive; returns the shared root and the named object buckets."""
        root = Result()
        buckets: Dict[str, Result] = {}
        for mapping in mappings:
            if not mapping.to:
                self.logger.warning(f"Skipping mapping for key '{mapping.key}' without a destination")
                continue
            target = root
            if mapping.object:
                target = buckets.setdefault(mapping.object, Result())
            value = self._mapped_value(source, mapping)
            if value is MISSING:
                self.logger.debug(f"Remap key '{mapping.key}' not found in source")
                value = None
            assign(target, mapping.to, copy.deepcopy(value))
        return root, buckets

    def _mapped_value(self, source: Any, mapping: Mapping) -> Any:
        located = locate(source, mapping.key)
        if not (mapping.is_array or mapping.array_obj_map):
            return located

        kind = classify(located)
        if kind is ValueKind.MISSING:
            return MISSING
        if kind is ValueKind.LIST:
            elements = list(located)
        elif kind is ValueKind.RECORD:
            elements = list(located.values())
        else:
            elements = [located]

        if not mapping.array_obj_map:
            return elements
        return [self._remap_element(element, mapping.array_obj_map, index)
                for index, element in enumerate(elements)]

    def _remap_element(self, element: Any, mappings: Sequence[Mapping], index: int) -> Result:
        """One output object built from one source element; format templates are copied fresh per element."""
        remapped = Result()
        for mapping in mappings:
            if mapping.format:
                remapped.update(self.resolver.copy_template(mapping.format, index))
            value = self._mapped_value(element, mapping)
            if value is MISSING or not mapping.to:
                continue
            assign(remapped, mapping.to, copy.deepcopy(value))
        return remapped


def remap(source: Any, mappings: Sequence[Mapping], resolver: Optional[PlaceholderResolver] = None) -> Result:
    return Remapper(resolver=resolver).remap(source, mappings)
