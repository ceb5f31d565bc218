"""Merchant-name extraction from free-text payment descriptions.

Rules are tried in order and the first that yields a name wins:

1. a known-merchant token, widened to the phrase captured by a
   "payment to X" / "from X" pattern when that phrase contains it;
2. a generic "to/from/at X" capture of reasonable length;
3. the first capitalized description word that is not generic or a place;
4. the first word of the payee note, under the same test;
5. any such capitalized word in the combined text;
6. the sentinel (``Unknown Merchant`` by default).
"""

from __future__ import annotations

import re

from ledgersync.categorization.catalog import MerchantRules, get_default_catalog

_STOP = r"(?:\s+for|\s+at|\s+ride|\s+bill|$)"

_WIDENING_PATTERNS = (
    re.compile(rf"payment\s+to\s+([A-Za-z\s]+?){_STOP}", re.IGNORECASE),
    re.compile(rf"from\s+([A-Za-z\s]+?){_STOP}", re.IGNORECASE),
)

_CAPTURE_PATTERNS = (
    *_WIDENING_PATTERNS,
    re.compile(rf"to\s+([A-Za-z\s]+?){_STOP}", re.IGNORECASE),
    re.compile(r"at\s+([A-Za-z\s]+?)(?:\s+for|\s+ride|\s+bill|$)", re.IGNORECASE),
)

MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 49


def _is_candidate(word: str, stopwords: frozenset[str], rules: MerchantRules) -> bool:
    return (
        len(word) >= MIN_NAME_LENGTH
        and word[0].isupper()
        and word[0].isalpha()
        and word not in stopwords
        and word not in rules.location_words
    )


def _known_merchant(text: str, rules: MerchantRules) -> str | None:
    for word in text.split():
        token = word.lower()
        if token not in rules.known:
            continue
        for pattern in _WIDENING_PATTERNS:
            match = pattern.search(text)
            if match:
                phrase = match.group(1).strip()
                if token in phrase.lower() and len(phrase) > len(word):
                    return phrase
        return word
    return None


def _captured_phrase(text: str) -> str | None:
    for pattern in _CAPTURE_PATTERNS:
        match = pattern.search(text)
        if match:
            phrase = match.group(1).strip()
            if MIN_NAME_LENGTH <= len(phrase) <= MAX_NAME_LENGTH:
                return phrase
    return None


def extract_merchant_name(
    description: str | None,
    note: str | None = None,
    rules: MerchantRules | None = None,
) -> str:
    """Best-effort merchant name from a payer message and payee note.

    Args:
        description: Payer message / transaction description
        note: Payee note
        rules: Word lists to use (defaults to the process catalog)

    Returns:
        Merchant name, or ``rules.sentinel`` when nothing qualifies
    """
    rules = rules or get_default_catalog().merchants
    desc = (description or "").strip()
    note = (note or "").strip()
    full_text = f"{desc} {note}".strip()

    if not full_text or (desc, note) in rules.generic_pairs:
        return rules.sentinel

    merchant = _known_merchant(full_text, rules) or _captured_phrase(full_text)
    if merchant:
        return merchant

    for word in desc.split():
        if _is_candidate(word, rules.description_stopwords, rules):
            return word

    note_words = note.split()
    if note_words and _is_candidate(note_words[0], rules.note_stopwords, rules):
        return note_words[0]

    for word in full_text.split():
        if _is_candidate(word, rules.text_stopwords, rules):
            return word

    return rules.sentinel
