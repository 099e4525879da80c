"""
Stop name normalization and fuzzy equivalence
Reduces locale noise in stop names before comparing them with a token-aware ratio.
"""

import re
from typing import Optional

from rapidfuzz import fuzz
from text_unidecode import unidecode

from geoindex.config import NameProfile, NormalizationRules, get_name_rules

DEFAULT_SIMILARITY_THRESHOLD = 85

_PARENTHETICAL_RE = re.compile(r"\([^()]*\)")
_HYPHEN_RE = re.compile(r"-")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")


class NameNormalizer:
    """
    Deterministic stop-name transform driven by a NormalizationRules table.

    Steps, in order: transliterate to ASCII, lowercase, drop parenthetical
    notes, hyphens to spaces, drop other punctuation, drop standalone mode
    tokens, collapse whitespace, abbreviate long forms.
    """

    def __init__(self, rules: Optional[NormalizationRules] = None):
        self.rules = rules or get_name_rules(NameProfile.DEFAULT)
        tokens = sorted(self.rules.mode_tokens, key=len, reverse=True)
        self._mode_re = (
            re.compile(r"\b(?:" + "|".join(re.escape(t) for t in tokens) + r")\b")
            if tokens else None
        )
        self._suffixes = sorted(self.rules.suffix_abbreviations.items(), key=lambda kv: len(kv[0]), reverse=True)

    def normalize(self, name: str) -> str:
        text = unidecode(name or "").lower()

        # Repeat so nested notes like "(Gleis (3))" disappear entirely
        previous = None
        while previous != text:
            previous, text = text, _PARENTHETICAL_RE.sub(" ", text)

        text = _HYPHEN_RE.sub(" ", text)
        text = _NON_ALNUM_RE.sub("", text)
        if self._mode_re is not None:
            text = self._mode_re.sub(" ", text)
        text = _WHITESPACE_RE.sub(" ", text).strip()

        return " ".join(self._abbreviate(word) for word in text.split(" ")) if text else ""

    def _abbreviate(self, word: str) -> str:
        short = self.rules.word_abbreviations.get(word)
        if short is not None:
            return short
        for suffix, replacement in self._suffixes:
            if word.endswith(suffix):
                return word[:-len(suffix)] + replacement
        return word


_default_normalizer = NameNormalizer()


def normalize(name: str, normalizer: Optional[NameNormalizer] = None) -> str:
    """Normalize a stop name with the given normalizer (default profile if omitted)."""
    return (normalizer or _default_normalizer).normalize(name)


def similarity_normalized(left: str, right: str) -> float:
    """
    Token-sort ratio (0-100) of two already-normalized names.

    Symmetric in its arguments. An empty side scores 0.
    """
    if not left or not right:
        return 0.0
    return fuzz.token_sort_ratio(left, right, processor=None)


def similarity(left: str, right: str, normalizer: Optional[NameNormalizer] = None) -> float:
    """Normalize both names and score them 0-100."""
    return similarity_normalized(normalize(left, normalizer), normalize(right, normalizer))


def consider_same(left: str, right: str, threshold: int = DEFAULT_SIMILARITY_THRESHOLD,
                  normalizer: Optional[NameNormalizer] = None) -> bool:
    """
    Should two stop names be considered the same place name?

    Names that normalize to nothing (e.g. just "Bus") only match each other,
    and only when their raw forms agree ignoring case.

    Args:
        left, right: Raw stop names
        threshold: Minimum ratio (0-100) to count as the same
        normalizer: Normalization tables to use

    Returns:
        True if the similarity ratio meets or exceeds threshold
    """
    norm_left = normalize(left, normalizer)
    norm_right = normalize(right, normalizer)
    return names_match(left, right, norm_left, norm_right, threshold)


def names_match(raw_left: str, raw_right: str, norm_left: str, norm_right: str,
                threshold: int) -> bool:
    """consider_same for callers that already hold the normalized forms."""
    if not norm_left and not norm_right:
        return (raw_left or "").strip().casefold() == (raw_right or "").strip().casefold()
    if not norm_left or not norm_right:
        return False
    return similarity_normalized(norm_left, norm_right) >= threshold
