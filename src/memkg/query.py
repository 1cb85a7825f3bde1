"""Query parsing: boolean operators, quoted phrases and field prefixes.

Syntax:
    auth module          optional terms (OR)
    +auth +security      required terms (AND)
    auth -deprecated     excluded term
    "tech debt"          exact phrase
    name:AuthService     field-scoped (name | type | obs), value may be quoted

Every stored term is lower-cased. There is no escape syntax: a literal
leading +/- or an embedded double quote cannot be searched for.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

FIELDS = ("name", "type", "obs")

_PHRASE_RE = re.compile(r'"([^"]+)"')
# field:value only at the start of a whitespace-delimited token
_FIELD_RE = re.compile(
    rf'(?<!\S)({"|".join(FIELDS)}):(?:"([^"]+)"|(\S+))', re.IGNORECASE
)


@dataclass
class ParsedQuery:
    required: list[str] = field(default_factory=list)   # +term
    optional: list[str] = field(default_factory=list)   # plain term
    excluded: list[str] = field(default_factory=list)   # -term
    phrases: list[str] = field(default_factory=list)    # "exact phrase"

    @property
    def positive_terms(self) -> list[str]:
        """Terms that can admit a match (everything except exclusions)."""
        return [*self.required, *self.optional, *self.phrases]

    @property
    def has_positive_terms(self) -> bool:
        return bool(self.required or self.optional or self.phrases)

    @property
    def is_empty(self) -> bool:
        return not (self.has_positive_terms or self.excluded)


@dataclass
class FieldQuery:
    name: ParsedQuery | None = None
    type: ParsedQuery | None = None
    obs: ParsedQuery | None = None
    all: ParsedQuery | None = None      # free text outside any field prefix

    @property
    def has_field_scopes(self) -> bool:
        return self.name is not None or self.type is not None or self.obs is not None

    @property
    def is_usable(self) -> bool:
        """False when stripping field prefixes left no term that can match."""
        return self.has_field_scopes or (self.all is not None and self.all.has_positive_terms)


def tokenize(text: str) -> list[str]:
    return text.lower().split()


def parse_query(query: str) -> ParsedQuery:
    """Split a raw query into required / optional / excluded terms and phrases."""
    result = ParsedQuery()

    def _take_phrase(m: re.Match[str]) -> str:
        result.phrases.append(m.group(1).lower())
        return " "

    remaining = _PHRASE_RE.sub(_take_phrase, query)

    for token in remaining.split():
        if token.startswith("+") and len(token) > 1:
            result.required.append(token[1:].lower())
        elif token.startswith("-") and len(token) > 1:
            result.excluded.append(token[1:].lower())
        else:
            result.optional.append(token.lower())
    return result


def parse_field_query(query: str) -> FieldQuery:
    """Pull out name:/type:/obs: scopes; the leftover text becomes the all-fields query.

    A field given twice keeps its last value.
    """
    fq = FieldQuery()

    def _take_field(m: re.Match[str]) -> str:
        value = m.group(2) if m.group(2) is not None else m.group(3)
        setattr(fq, m.group(1).lower(), parse_query(value))
        return " "

    remaining = _FIELD_RE.sub(_take_field, query).strip()
    if remaining:
        fq.all = parse_query(remaining)
    return fq


def strip_field_prefixes(query: str) -> str:
    """Remove field:value tokens, leaving the free text used for scoring."""
    return " ".join(_FIELD_RE.sub(" ", query).split())
