# rulescraper/transforms.py
"""
Ordered regex rewrite/split pipeline applied to extracted scalar values.

Replacement templates reference capture groups as ``$1``, ``${1}``,
``$name`` or ``${name}``; ``$$`` is a literal dollar. An unbraced reference
takes the longest run of letters, digits and underscores, so ``$1x`` names
group ``1x``. References to groups the pattern does not have expand to "".
"""
import functools
import logging
import re
from typing import Any, List, Optional, Sequence, Tuple

import config
from .result import safe_string
from .rule_models import Transform, transforms_or_default

logger = logging.getLogger(__name__)

_TEMPLATE_REF = re.compile(r"\$(?:\{(\w+)\}|(\w+)|(\$))")


def default_transforms() -> List[Transform]:
    return transforms_or_default(None, config.DEFAULT_TRANSFORMS)


@functools.lru_cache(maxsize=256)
def _compile(pattern: str) -> Tuple[Optional[re.Pattern], str]:
    """Compiled pattern and an empty message, or None and the compile error."""
    try:
        return re.compile(pattern), ""
    except re.error as e:
        return None, str(e)


@functools.lru_cache(maxsize=256)
def _parse_template(template: str) -> Tuple[Tuple[bool, str], ...]:
    """Template as (is_reference, text) parts."""
    parts = []
    pos = 0
    for m in _TEMPLATE_REF.finditer(template):
        if m.start() > pos:
            parts.append((False, template[pos:m.start()]))
        if m.group(3):
            parts.append((False, "$"))
        else:
            parts.append((True, m.group(1) or m.group(2)))
        pos = m.end()
    if pos < len(template):
        parts.append((False, template[pos:]))
    return tuple(parts)


def _group_text(match: re.Match, name: str) -> str:
    pattern = match.re
    if name.isdigit():
        number = int(name)
        if number > pattern.groups:
            return ""
        return match.group(number) or ""
    if name not in pattern.groupindex:
        return ""
    return match.group(name) or ""


def _expand(template: str, match: re.Match) -> str:
    return "".join(_group_text(match, text) if is_ref else text for is_ref, text in _parse_template(template))


def apply_transform(value: Any, transforms: Sequence[Transform]) -> List[Any]:
    """Run one scalar through the pipeline; returns one or more values."""
    if not transforms:
        return [value]
    text = safe_string(value)
    if text == "":
        return [value]

    fragments: List[Any] = []
    for transform in transforms:
        pattern, error = _compile(transform.match)
        if pattern is None:
            logger.error(f"Skipping invalid transform pattern '{transform.match}': {error}")
            continue
        if transform.split:
            fragments.extend(part for part in pattern.split(text) if part)
            continue
        text = pattern.sub(functools.partial(_expand, transform.replace), text)
    if fragments:
        return fragments
    return [text]


def apply_transforms(value: Any, transforms: Sequence[Transform]) -> List[Any]:
    """Lists are transformed element-wise and the outputs concatenated in order."""
    if isinstance(value, list):
        output: List[Any] = []
        for item in value:
            output.extend(apply_transforms(item, transforms))
        return output
    return apply_transform(value, transforms)
