"""Weighted, explainable transaction classifier.

Each catalog category is scored on normalized text as

    keyword * [any keyword substring] + pattern * [any regex]
    + amount * amount_score + context * context_score

and the best category wins (ties keep the earlier catalog entry). A winner
below the acceptance threshold is discarded in favour of an amount/text
fallback heuristic whose result is flagged for review.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from ledgersync.categorization.catalog import CategoryCatalog, CategoryRule, get_default_catalog

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    """Lower-case, replace punctuation with spaces and collapse whitespace."""
    text = _NON_WORD.sub(" ", (text or "").lower())
    return _WHITESPACE.sub(" ", text).strip()


@dataclass(frozen=True)
class ClassificationResult:
    category_id: str
    confidence: float
    direction: str
    reasons: tuple[str, ...] = field(default_factory=tuple)
    is_fallback: bool = False

    @property
    def needs_review(self) -> bool:
        return self.is_fallback


@dataclass
class _Score:
    category: CategoryRule
    score: float
    reasons: list[str]


class CategorizationEngine:
    """Deterministic classifier over an injected ``CategoryCatalog``."""

    def __init__(self, catalog: CategoryCatalog | None = None):
        self.catalog = catalog or get_default_catalog()

    def categories(self, direction: str | None = None) -> tuple[CategoryRule, ...]:
        """Catalog categories, optionally filtered by ``income``/``expense``."""
        return self.catalog.by_direction(direction)

    def classify(
        self,
        free_text: str | None,
        amount: float | Decimal | int,
        payer_info: dict[str, Any] | None = None,
        merchant_hint: str | None = None,
    ) -> ClassificationResult:
        """Classify a transaction.

        Args:
            free_text: Payer message and payee note, concatenated
            amount: Non-negative major-unit amount
            payer_info: Provider payer party (not used in scoring)
            merchant_hint: Extracted merchant name, appended to the text

        Returns:
            ClassificationResult with confidence in [0, confidence_ceiling]
        """
        text = normalize_text(f"{free_text or ''} {merchant_hint or ''}")
        value = float(amount)

        best: _Score | None = None
        for category in self.catalog.categories:
            candidate = self._score(text, value, category)
            if best is None or candidate.score > best.score:
                best = candidate

        confidence = round(min(best.score * 100, self.catalog.confidence_ceiling), 2)
        if confidence < self.catalog.acceptance_threshold:
            return self._fallback(text, value, best.reasons)

        return ClassificationResult(
            category_id=best.category.id,
            confidence=max(confidence, 0.0),
            direction=best.category.direction,
            reasons=tuple(best.reasons),
        )

    def _score(self, text: str, amount: float, category: CategoryRule) -> _Score:
        weights = self.catalog.weights
        reasons: list[str] = []
        score = 0.0

        matched = [k for k in category.keywords if k in text]
        if matched:
            score += weights.keyword
            reasons.append(f"Matched keywords: {', '.join(matched)}")

        if any(p.search(text) for p in category.patterns):
            score += weights.pattern
            reasons.append("Matched merchant patterns")

        score += weights.amount * self._amount_score(amount, category)
        score += weights.context * self._context_score(text, category)
        return _Score(category=category, score=score, reasons=reasons)

    def _amount_score(self, amount: float, category: CategoryRule) -> float:
        scoring = self.catalog.amount_scoring
        bounds = category.amount_range
        if bounds is None:
            return scoring.unconfigured
        if not bounds.min <= amount <= bounds.max:
            return scoring.out_of_range
        if any(abs(amount - t) <= t * scoring.typical_tolerance for t in bounds.typical):
            return scoring.typical
        return scoring.in_range

    def _context_score(self, text: str, category: CategoryRule) -> float:
        clues = category.context_clues
        matches = sum(1 for clue in clues if clue in text)
        if not matches:
            return self.catalog.default_context_score
        return min(matches / len(clues), 1.0)

    def _fallback(self, text: str, amount: float, reasons: list[str]) -> ClassificationResult:
        rules = self.catalog.fallback

        if not text:
            category_id, nominal, reason = (
                rules.generic_category,
                rules.empty_text_confidence,
                "Empty description - manual categorization recommended",
            )
        elif amount == 0:
            category_id, nominal, reason = (
                rules.fee_category,
                rules.zero_amount_confidence,
                "Zero amount transaction - may be fee or adjustment",
            )
        elif amount < rules.small_amount_threshold:
            category_id, nominal, reason = (
                rules.fee_category,
                rules.small_amount_confidence,
                "Small amount suggests fee or service charge",
            )
        elif amount > rules.large_amount_threshold:
            if any(word in text for word in rules.income_indicators):
                category_id, nominal, reason = (
                    rules.income_category,
                    rules.large_income_confidence,
                    "Large amount with income indicators",
                )
            else:
                category_id, nominal, reason = (
                    rules.large_purchase_category,
                    rules.large_purchase_confidence,
                    "Large amount suggests major purchase",
                )
        else:
            category_id, nominal, reason = (
                rules.generic_category,
                rules.default_confidence,
                "Default categorization for unrecognized transaction",
            )

        category = self.catalog.get(category_id)
        confidence = min(nominal, self.catalog.review_ceiling)
        fallback_reasons = [*reasons, reason]
        if confidence < nominal:
            fallback_reasons.append(
                f"Heuristic confidence {nominal:g} capped at {confidence:g} pending review"
            )
        logger.debug(
            "Fallback categorization",
            extra={"category_id": category_id, "nominal_confidence": nominal},
        )
        return ClassificationResult(
            category_id=category_id,
            confidence=confidence,
            direction=category.direction,
            reasons=tuple(fallback_reasons),
            is_fallback=True,
        )
