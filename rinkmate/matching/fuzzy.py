"""Abbreviation-aware fuzzy name matching for teams and contacts."""

from __future__ import annotations

import re

REGION_ABBREVIATIONS: dict[str, str] = {
    "al": "alabama", "ak": "alaska", "az": "arizona", "ar": "arkansas",
    "ca": "california", "co": "colorado", "ct": "connecticut", "de": "delaware",
    "fl": "florida", "ga": "georgia", "hi": "hawaii", "id": "idaho",
    "il": "illinois", "in": "indiana", "ia": "iowa", "ks": "kansas",
    "ky": "kentucky", "la": "louisiana", "me": "maine", "md": "maryland",
    "ma": "massachusetts", "mi": "michigan", "mn": "minnesota", "ms": "mississippi",
    "mo": "missouri", "mt": "montana", "ne": "nebraska", "nv": "nevada",
    "nh": "new hampshire", "nj": "new jersey", "nm": "new mexico", "ny": "new york",
    "nc": "north carolina", "nd": "north dakota", "oh": "ohio", "ok": "oklahoma",
    "or": "oregon", "pa": "pennsylvania", "ri": "rhode island", "sc": "south carolina",
    "sd": "south dakota", "tn": "tennessee", "tx": "texas", "ut": "utah",
    "vt": "vermont", "va": "virginia", "wa": "washington", "wv": "west virginia",
    "wi": "wisconsin", "wy": "wyoming", "dc": "district of columbia",
    # Canadian provinces
    "on": "ontario", "qc": "quebec", "bc": "british columbia", "ab": "alberta",
    "mb": "manitoba", "sk": "saskatchewan", "ns": "nova scotia", "nb": "new brunswick",
    "nl": "newfoundland", "pe": "prince edward island",
}

STOP_WORDS = frozenset({"the", "team", "hockey", "youth", "ice", "club", "association", "for", "and"})

_PATTERNS = {abbr: re.compile(rf"\b{abbr}\b") for abbr in REGION_ABBREVIATIONS}


class FuzzyNameResolver:
    """Expands region codes in free-text names and scores candidate names.

    The resolver is stateless; one instance is shared by team search, opponent
    lookup and manager search.
    """

    def __init__(self, abbreviations: dict[str, str] | None = None) -> None:
        self._abbreviations = abbreviations or REGION_ABBREVIATIONS
        if abbreviations is None:
            self._patterns = _PATTERNS
        else:
            self._patterns = {abbr: re.compile(rf"\b{re.escape(abbr)}\b") for abbr in abbreviations}

    def expand(self, term: str) -> list[str]:
        """Return the lower-cased term followed by its region-expanded variants."""
        lowered = " ".join(term.lower().split())
        expanded = [lowered]
        for abbr, full_name in self._abbreviations.items():
            pattern = self._patterns[abbr]
            if not pattern.search(lowered):
                continue
            variant = pattern.sub(full_name, lowered)
            if variant not in expanded:
                expanded.append(variant)
        return expanded

    def is_region_code(self, word: str) -> bool:
        return word.lower() in self._abbreviations

    def region_name(self, word: str) -> str | None:
        return self._abbreviations.get(word.lower())

    def score(
        self,
        candidate_name: str,
        expanded_terms: list[str],
        original_term: str,
        secondary_name: str = "",
    ) -> int:
        """Score a candidate against a query. Zero means no match."""
        primary = (candidate_name or "").lower()
        secondary = (secondary_name or "").lower()
        combined = f"{primary} {secondary}"
        original = original_term.lower().strip()

        score = 0
        if original and original in primary:
            score += 100

        for term in expanded_terms:
            if term in primary:
                score += 50
            if secondary and term in secondary:
                score += 30
            for keyword in (k for k in term.split() if len(k) > 1):
                if keyword in primary:
                    score += 10
                if keyword in secondary:
                    score += 5

        for word in original.split():
            if len(word) > 2 and re.search(rf"\b{re.escape(word)}\b", combined):
                score += 15

        return score

    def keywords(self, term: str, min_length: int = 3) -> list[str]:
        """Meaningful words of ``term`` and its expansions, longest first.

        Short words survive only when they are known region codes.
        """
        found: list[str] = []
        for variant in self.expand(term):
            for word in re.split(r"[\s-]+", variant):
                if not word or word in STOP_WORDS or word in found:
                    continue
                if len(word) < min_length and not self.is_region_code(word):
                    continue
                found.append(word)
        return sorted(found, key=len, reverse=True)
