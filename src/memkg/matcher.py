"""Evaluate parsed queries against entity text, with an edit-distance fallback."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rapidfuzz.distance import Levenshtein

if TYPE_CHECKING:
    from collections.abc import Iterable

    from memkg.models import Entity
    from memkg.query import FieldQuery, ParsedQuery


def matches_parsed_query(text: str, parsed: ParsedQuery) -> bool:
    """Case-insensitive substring evaluation of a boolean query.

    Optional terms only gate the match when no required term and no phrase
    is present; otherwise they are advisory (they still influence scoring).
    An empty query matches everything.
    """
    lower = text.lower()

    if parsed.required and not all(term in lower for term in parsed.required):
        return False
    if any(term in lower for term in parsed.excluded):
        return False
    if not all(phrase in lower for phrase in parsed.phrases):
        return False
    if parsed.optional and not parsed.required and not parsed.phrases:
        return any(term in lower for term in parsed.optional)
    return True


def entity_matches_field_query(entity: Entity, fq: FieldQuery) -> bool:
    """Every populated scope must match its projection of the entity (AND)."""
    if fq.name is not None and not matches_parsed_query(entity.name, fq.name):
        return False
    if fq.type is not None and not matches_parsed_query(entity.entity_type, fq.type):
        return False
    if fq.obs is not None and not matches_parsed_query(" ".join(entity.observations), fq.obs):
        return False
    if fq.all is not None and not matches_parsed_query(entity.text, fq.all):
        return False
    return True


def levenshtein_distance(a: str, b: str) -> int:
    """Unit-cost insert/delete/substitute distance."""
    return Levenshtein.distance(a, b)


def fuzzy_match(text: str, term: str, max_distance: int | None = None) -> bool:
    """True if any whitespace-separated word of text is close to term.

    A word matches when either contains the other, or when the lengths differ
    by at most the tolerance and the edit distance is within it. The default
    tolerance is max(1, len(term) // 4).
    """
    term = term.lower()
    tolerance = max_distance if max_distance is not None else max(1, len(term) // 4)

    for word in text.lower().split():
        if term in word or word in term:
            return True
        if (
            abs(len(word) - len(term)) <= tolerance
            and Levenshtein.distance(word, term, score_cutoff=tolerance) <= tolerance
        ):
            return True
    return False


def fuzzy_match_any(text: str, terms: Iterable[str]) -> bool:
    return any(fuzzy_match(text, term) for term in terms)
