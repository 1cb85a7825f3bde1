"""Tests for entity and observation relevance scores."""

from memkg.models import Entity
from memkg.scorer import score_entity, score_observation


class TestScoreEntity:
    def test_exact_name(self):
        assert score_entity(Entity("Alice", "person", []), "alice") == 100

    def test_name_contains_query(self):
        assert score_entity(Entity("Alice Smith", "person", []), "alice") == 50

    def test_token_in_name(self):
        assert score_entity(Entity("Alice", "person", []), "alice cooper") == 30

    def test_fuzzy_name_only_when_enabled(self):
        e = Entity("Alice", "person", [])
        assert score_entity(e, "alise") == 0
        assert score_entity(e, "alise", fuzzy=True) == 15

    def test_type_exact_and_token(self):
        assert score_entity(Entity("X", "person", []), "person") == 40
        assert score_entity(Entity("X", "person", []), "person bob") == 20

    def test_observations_are_cumulative(self):
        e = Entity("X", "t", ["senior engineer", "engineer at corp", "plays chess"])
        assert score_entity(e, "engineer") == 30
        # neither observation holds the full query, both hold a token
        assert score_entity(e, "engineer corp") == 20

    def test_exact_name_outranks_substring(self):
        exact = score_entity(Entity("Graph", "t", []), "graph")
        partial = score_entity(Entity("GraphDB", "t", []), "graph")
        assert exact >= partial


class TestScoreObservation:
    def test_full_match_with_token_and_prefix(self):
        # 100 full + 20 token + 15 prefix
        assert score_observation("Deprecated in v2", "deprecated") == 135

    def test_token_hits_accumulate(self):
        # "auth" and "token" each +20, no full match, no prefix
        assert score_observation("uses token based auth", "auth token") == 40

    def test_fuzzy_tokens(self):
        assert score_observation("authentication", "authentcation") == 0
        assert score_observation("authentication", "authentcation", fuzzy=True) == 10

    def test_no_match_scores_zero(self):
        assert score_observation("nothing here", "graph") == 0
