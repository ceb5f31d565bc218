"""Category catalog loaded from YAML.

The catalog is immutable process-wide configuration: categories with their
keywords, regex patterns, amount ranges and context clues, plus the scoring
weights, fallback rules and merchant-extraction word lists. The engine takes a
catalog instance, so tests can build smaller ones with ``load_catalog`` or
``parse_catalog``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from ledgersync.config import settings

DEFAULT_CATALOG_PATH = Path(__file__).with_name("catalog.yaml")

DIRECTIONS = ("income", "expense")


class CatalogError(ValueError):
    """Raised when a catalog document is malformed."""


@dataclass(frozen=True)
class AmountRange:
    min: float
    max: float
    typical: tuple[float, ...] = ()


@dataclass(frozen=True)
class CategoryRule:
    id: str
    name: str
    direction: str
    keywords: tuple[str, ...]
    patterns: tuple[re.Pattern[str], ...]
    amount_range: AmountRange | None = None
    context_clues: tuple[str, ...] = ()


@dataclass(frozen=True)
class ScoringWeights:
    keyword: float
    pattern: float
    amount: float
    context: float


@dataclass(frozen=True)
class AmountScoring:
    typical_tolerance: float
    typical: float
    in_range: float
    out_of_range: float
    unconfigured: float


@dataclass(frozen=True)
class FallbackRules:
    generic_category: str
    fee_category: str
    income_category: str
    large_purchase_category: str
    small_amount_threshold: float
    large_amount_threshold: float
    income_indicators: tuple[str, ...]
    empty_text_confidence: float
    zero_amount_confidence: float
    small_amount_confidence: float
    large_income_confidence: float
    large_purchase_confidence: float
    default_confidence: float


@dataclass(frozen=True)
class MerchantRules:
    sentinel: str
    known: tuple[str, ...]
    location_words: frozenset[str]
    description_stopwords: frozenset[str]
    note_stopwords: frozenset[str]
    text_stopwords: frozenset[str]
    generic_pairs: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class CategoryCatalog:
    categories: tuple[CategoryRule, ...]
    weights: ScoringWeights
    amount_scoring: AmountScoring
    fallback: FallbackRules
    merchants: MerchantRules
    acceptance_threshold: float = 40
    confidence_ceiling: float = 95
    review_ceiling: float = 39
    default_context_score: float = 0.5

    def get(self, category_id: str) -> CategoryRule | None:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    def by_direction(self, direction: str | None = None) -> tuple[CategoryRule, ...]:
        if direction is None:
            return self.categories
        return tuple(c for c in self.categories if c.direction == direction)


def _require(data: dict[str, Any], key: str, where: str) -> Any:
    if key not in data:
        raise CatalogError(f"{where}: missing '{key}'")
    return data[key]


def _words(values: Any) -> tuple[str, ...]:
    return tuple(str(v) for v in (values or ()))


def _parse_category(raw: dict[str, Any]) -> CategoryRule:
    category_id = str(_require(raw, "id", "category"))
    where = f"category '{category_id}'"
    direction = _require(raw, "direction", where)
    if direction not in DIRECTIONS:
        raise CatalogError(f"{where}: direction must be one of {DIRECTIONS}")

    try:
        patterns = tuple(re.compile(str(p), re.IGNORECASE) for p in raw.get("patterns") or ())
    except re.error as exc:
        raise CatalogError(f"{where}: invalid pattern ({exc})") from exc

    amount_range = None
    if raw.get("amount_range"):
        bounds = raw["amount_range"]
        amount_range = AmountRange(
            min=float(_require(bounds, "min", where)),
            max=float(_require(bounds, "max", where)),
            typical=tuple(float(v) for v in bounds.get("typical") or ()),
        )
        if amount_range.min > amount_range.max:
            raise CatalogError(f"{where}: amount_range min exceeds max")

    return CategoryRule(
        id=category_id,
        name=str(raw.get("name") or category_id.replace("_", " ").title()),
        direction=direction,
        keywords=tuple(k.lower() for k in _words(raw.get("keywords"))),
        patterns=patterns,
        amount_range=amount_range,
        context_clues=tuple(c.lower() for c in _words(raw.get("context_clues"))),
    )


def _parse_fallback(raw: dict[str, Any]) -> FallbackRules:
    confidence = _require(raw, "confidence", "fallback")
    return FallbackRules(
        generic_category=_require(raw, "generic_category", "fallback"),
        fee_category=_require(raw, "fee_category", "fallback"),
        income_category=_require(raw, "income_category", "fallback"),
        large_purchase_category=_require(raw, "large_purchase_category", "fallback"),
        small_amount_threshold=float(_require(raw, "small_amount_threshold", "fallback")),
        large_amount_threshold=float(_require(raw, "large_amount_threshold", "fallback")),
        income_indicators=tuple(w.lower() for w in _words(raw.get("income_indicators"))),
        empty_text_confidence=float(confidence["empty_text"]),
        zero_amount_confidence=float(confidence["zero_amount"]),
        small_amount_confidence=float(confidence["small_amount"]),
        large_income_confidence=float(confidence["large_income"]),
        large_purchase_confidence=float(confidence["large_purchase"]),
        default_confidence=float(confidence["default"]),
    )


def _parse_merchants(raw: dict[str, Any]) -> MerchantRules:
    return MerchantRules(
        sentinel=str(raw.get("sentinel") or "Unknown Merchant"),
        known=tuple(w.lower() for w in _words(raw.get("known"))),
        location_words=frozenset(_words(raw.get("location_words"))),
        description_stopwords=frozenset(_words(raw.get("description_stopwords"))),
        note_stopwords=frozenset(_words(raw.get("note_stopwords"))),
        text_stopwords=frozenset(_words(raw.get("text_stopwords"))),
        generic_pairs=tuple(
            (str(pair[0]), str(pair[1])) for pair in raw.get("generic_pairs") or ()
        ),
    )


def parse_catalog(data: dict[str, Any]) -> CategoryCatalog:
    """Build a ``CategoryCatalog`` from an already-parsed YAML document.

    Raises:
        CatalogError: If required keys are missing, a direction or pattern is
            invalid, category ids repeat, or a fallback category is unknown
    """
    if not isinstance(data, dict):
        raise CatalogError("catalog document must be a mapping")

    categories = tuple(_parse_category(c) for c in _require(data, "categories", "catalog"))
    if not categories:
        raise CatalogError("catalog: at least one category is required")
    ids = [c.id for c in categories]
    if len(ids) != len(set(ids)):
        raise CatalogError("catalog: category ids must be unique")

    weights = _require(data, "weights", "catalog")
    scoring = data.get("amount_scoring") or {}
    fallback = _parse_fallback(_require(data, "fallback", "catalog"))

    for field in ("generic_category", "fee_category", "income_category", "large_purchase_category"):
        if getattr(fallback, field) not in ids:
            raise CatalogError(f"fallback: {field} '{getattr(fallback, field)}' is not in the catalog")

    return CategoryCatalog(
        categories=categories,
        weights=ScoringWeights(
            keyword=float(weights["keyword"]),
            pattern=float(weights["pattern"]),
            amount=float(weights["amount"]),
            context=float(weights["context"]),
        ),
        amount_scoring=AmountScoring(
            typical_tolerance=float(scoring.get("typical_tolerance", 0.2)),
            typical=float(scoring.get("typical", 1.0)),
            in_range=float(scoring.get("in_range", 0.7)),
            out_of_range=float(scoring.get("out_of_range", 0.2)),
            unconfigured=float(scoring.get("unconfigured", 0.5)),
        ),
        fallback=fallback,
        merchants=_parse_merchants(data.get("merchants") or {}),
        acceptance_threshold=float(data.get("acceptance_threshold", 40)),
        confidence_ceiling=float(data.get("confidence_ceiling", 95)),
        review_ceiling=float(data.get("review_ceiling", 39)),
        default_context_score=float(data.get("default_context_score", 0.5)),
    )


def load_catalog(path: str | Path | None = None) -> CategoryCatalog:
    """Load a catalog from a YAML file (the bundled default when ``path`` is None)."""
    catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH
    with catalog_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return parse_catalog(data)


@lru_cache(maxsize=1)
def get_default_catalog() -> CategoryCatalog:
    """Process-wide catalog, honouring ``settings.catalog_path``."""
    return load_catalog(settings.catalog_path)
