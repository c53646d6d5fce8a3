# rulescraper/evaluator.py
"""
Recursive evaluation of extraction rule trees against a parsed document.

Field-level misses never raise: an empty match yields ``""`` (single) or
``[]`` (multiple), a failed visit keeps the raw link. Only the root page
fetch in ``scrape`` propagates errors.
"""
import logging
from typing import Any, List, Optional, Sequence, Type, TypeVar
from urllib.parse import urljoin, urlparse

from pydantic import BaseModel

from .exceptions import FetchError
from .fetchers import Fetcher
from .progress import RuleProgress
from .result import Result
from .rule_models import ExtractionRule
from .selection import Selection
from .transforms import apply_transforms, default_transforms

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def resolve_url(base_url: str, raw: str) -> Optional[str]:
    """Absolute form of ``raw`` relative to ``base_url``; None when it cannot be parsed."""
    try:
        resolved = urljoin(base_url, raw.strip())
        urlparse(resolved).port  # raises ValueError on malformed netloc
    except ValueError:
        return None
    return resolved


def _flatten_once(values: List[Any]) -> List[Any]:
    flat: List[Any] = []
    for value in values:
        if isinstance(value, list):
            flat.extend(value)
        else:
            flat.append(value)
    return flat


class RuleEvaluator:
    def __init__(self, fetcher: Optional[Fetcher] = None, progress: Optional[RuleProgress] = None,
                 logger_instance=None):
        self.fetcher = fetcher
        self.progress = progress or RuleProgress()
        self.logger = logger_instance if logger_instance else logger

    def evaluate(self, scope: Selection, rule: ExtractionRule, base_url: str) -> Any:
        scope = scope.clone()
        if rule.children:
            matches = scope.query(rule.selector)
            if rule.multiple:
                self.progress.increment_total(len(matches))
                records = []
                for element in matches:
                    records.append(self._evaluate_record(element, rule, base_url))
                    self.progress.add(1)
                self.logger.debug(f"Rule '{rule.name}': {len(records)} records from '{rule.selector}'")
                return records
            return self._evaluate_record(matches.first(), rule, base_url)
        return self._evaluate_leaf(scope, rule, base_url)

    def _evaluate_record(self, element: Selection, rule: ExtractionRule, base_url: str) -> Result:
        record = Result()
        visited = False
        if rule.attr:
            raw, _ = element.attr(rule.attr)
            if (rule.download or rule.visit) and raw.strip():
                resolved = resolve_url(base_url, raw)
                if resolved is None:
                    record[rule.attr] = raw
                elif rule.visit:
                    visited = self._visit(record, rule, raw, resolved)
                else:
                    record[rule.attr] = resolved
            else:
                record[rule.attr] = self._single_value(raw, rule)

        if not visited:
            self.progress.increment_total(len(rule.children))
            for child in rule.children:
                record[child.name] = self.evaluate(element, child, base_url)
                self.progress.add(1)
        return record

    def _visit(self, record: Result, rule: ExtractionRule, raw: str, resolved: str) -> bool:
        if self.fetcher is None:
            self.logger.warning(f"Rule '{rule.name}' wants to visit {resolved} but no fetcher is configured")
            record[rule.attr] = raw
            return False
        try:
            document = self.fetcher.fetch(resolved)
        except FetchError as e:
            self.logger.warning(f"Visit failed for rule '{rule.name}': {e}")
            record[rule.attr] = raw
            return False

        # continue evaluation rooted at the fetched page
        self.progress.increment_total(len(rule.children))
        for child in rule.children:
            record[child.name] = self.evaluate(document.selection, child, resolved)
            self.progress.add(1)
        return True

    def _element_value(self, element: Selection, rule: ExtractionRule, base_url: str) -> str:
        if not rule.attr:
            return element.text()
        raw, _ = element.attr(rule.attr)
        if (rule.download or rule.visit) and raw.strip():
            resolved = resolve_url(base_url, raw)
            if resolved is not None:
                return resolved
        return raw

    def _single_value(self, value: Any, rule: ExtractionRule) -> Any:
        transformed = apply_transforms(value, rule.transforms or default_transforms())
        if len(transformed) == 1:
            return transformed[0]
        return transformed

    def _evaluate_leaf(self, scope: Selection, rule: ExtractionRule, base_url: str) -> Any:
        matches = scope.query(rule.selector)
        if rule.multiple:
            values: List[Any] = [self._element_value(el, rule, base_url) for el in matches]
            if rule.flatten:
                values = _flatten_once(values)
            return apply_transforms(values, rule.transforms or default_transforms())

        if not matches:
            self.logger.debug(f"Rule '{rule.name}': selector '{rule.selector}' found no elements")
        return self._single_value(self._element_value(matches.first(), rule, base_url), rule)

    def evaluate_rules(self, scope: Selection, rules: Sequence[ExtractionRule], base_url: str) -> Result:
        root = Result()
        self.progress.set_total(len(rules))
        try:
            for rule in rules:
                root[rule.name] = self.evaluate(scope, rule, base_url)
                self.progress.add(1)
        finally:
            self.progress.close()
        return root


def scrape(fetcher: Fetcher, page_url: str, rules: Sequence[ExtractionRule],
           progress: Optional[RuleProgress] = None) -> Result:
    """Fetch ``page_url`` and evaluate every root rule. Root fetch failures propagate."""
    document = fetcher.fetch(page_url)
    evaluator = RuleEvaluator(fetcher=fetcher, progress=progress)
    result = evaluator.evaluate_rules(document.selection, rules, page_url)
    logger.info(f"Extracted {len(result)} root fields from {page_url}")
    return result


def scrape_to_json(fetcher: Fetcher, page_url: str, rules: Sequence[ExtractionRule],
                   progress: Optional[RuleProgress] = None, indent: Optional[int] = None) -> str:
    return scrape(fetcher, page_url, rules, progress).to_json(indent=indent)


def scrape_into(model_cls: Type[ModelT], fetcher: Fetcher, page_url: str, rules: Sequence[ExtractionRule],
                progress: Optional[RuleProgress] = None) -> ModelT:
    """Scrape and validate the JSON output into a pydantic model."""
    data = scrape_to_json(fetcher, page_url, rules, progress)
    return model_cls.model_validate_json(data)
