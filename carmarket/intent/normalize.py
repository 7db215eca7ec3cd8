"""Text normalization for deterministic intent parsing."""

from __future__ import annotations

import re

_CURRENCY_WORD_RE = re.compile(
    r"(?<![a-z])(?:chf|usd|eur|gbp|dollars?|bucks|euros?|francs?|pounds?)(?![a-z])"
)
_DIGIT_GROUP_RE = re.compile(r"(?<=\d)[,'’](?=\d{3}(?!\d))")
_NON_WORD_RE = re.compile(r"[^0-9a-z_.+\-\s]+")
_STRAY_DOT_RE = re.compile(r"(?<!\d)\.|\.(?!\d)")
_MULTISPACE_RE = re.compile(r"\s+")

CURRENCY_TOKEN = "cur"


def normalize_text(text: str) -> str:
    """Normalize user text for rules-based parsing.

    Normalization is intentionally conservative:
        - Lowercase; accents commonly typed in car names are folded ("coupé" -> "coupe").
        - Thousands separators inside numbers are dropped ("50,000" / "50'000" -> "50000").
        - Currency symbols and words become the single token `cur`.
        - Other punctuation becomes whitespace; `-`, `+` and decimal points are kept.
        - Whitespace is collapsed.

    The goal is deterministic tokenization, not linguistic lemmatization.
    """

    value = (text or "").strip().lower()
    value = value.replace("é", "e").replace("ë", "e").replace("ö", "o").replace("ü", "u")

    # Normalize common unicode dashes to ASCII hyphen.
    value = value.replace("—", "-").replace("–", "-")

    value = _DIGIT_GROUP_RE.sub("", value)

    for symbol in ("$", "€", "£"):
        value = value.replace(symbol, f" {CURRENCY_TOKEN} ")
    value = _CURRENCY_WORD_RE.sub(f" {CURRENCY_TOKEN} ", value)

    value = _NON_WORD_RE.sub(" ", value)
    value = _STRAY_DOT_RE.sub(" ", value)
    value = _MULTISPACE_RE.sub(" ", value).strip()
    return value
