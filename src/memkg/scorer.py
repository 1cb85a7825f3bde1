"""Relevance scoring for entities and single observations.

Scores are unnormalised sums used only for ranking:

    entity name   exact 100 | contains query 50 | contains a token 30 | fuzzy 15
    entity type   exact 40  | contains a token 20
    observation   contains query 15 | contains a token 10 | fuzzy 5   (per observation)

    single observation: contains query 100, +20 per contained token
    (+10 per fuzzy token), +15 when it starts with the query or a token
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from memkg.matcher import fuzzy_match
from memkg.query import tokenize

if TYPE_CHECKING:
    from memkg.models import Entity

NAME_EXACT = 100
NAME_CONTAINS = 50
NAME_TOKEN = 30
NAME_FUZZY = 15
TYPE_EXACT = 40
TYPE_TOKEN = 20
OBS_CONTAINS = 15
OBS_TOKEN = 10
OBS_FUZZY = 5

SINGLE_OBS_CONTAINS = 100
SINGLE_OBS_TOKEN = 20
SINGLE_OBS_FUZZY_TOKEN = 10
SINGLE_OBS_PREFIX = 15


def score_entity(entity: Entity, query: str, fuzzy: bool = False) -> int:
    q = query.lower()
    tokens = tokenize(query)
    score = 0

    name = entity.name.lower()
    if name == q:
        score += NAME_EXACT
    elif q in name:
        score += NAME_CONTAINS
    elif any(t in name for t in tokens):
        score += NAME_TOKEN
    elif fuzzy and fuzzy_match(entity.name, query):
        score += NAME_FUZZY

    etype = entity.entity_type.lower()
    if etype == q:
        score += TYPE_EXACT
    elif any(t in etype for t in tokens):
        score += TYPE_TOKEN

    for obs in entity.observations:
        lower = obs.lower()
        if q in lower:
            score += OBS_CONTAINS
        elif any(t in lower for t in tokens):
            score += OBS_TOKEN
        elif fuzzy and fuzzy_match(obs, query):
            score += OBS_FUZZY

    return score


def score_observation(observation: str, query: str, fuzzy: bool = False) -> int:
    """Score one observation; 0 means it should not be returned."""
    q = query.lower()
    lower = observation.lower()
    tokens = tokenize(query)
    score = 0

    if q in lower:
        score += SINGLE_OBS_CONTAINS

    for t in tokens:
        if t in lower:
            score += SINGLE_OBS_TOKEN
        elif fuzzy and fuzzy_match(observation, t):
            score += SINGLE_OBS_FUZZY_TOKEN

    if lower.startswith(q) or any(lower.startswith(t) for t in tokens):
        score += SINGLE_OBS_PREFIX

    return score
