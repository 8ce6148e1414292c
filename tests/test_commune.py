# -*- coding: utf-8 -*-
"""Tests pour la résolution des communes (src/commune.py)."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from conftest import geo_candidate
from src.commune import (
    Commune,
    CommuneResolver,
    ResolutionOutcome,
    ResolutionStatus,
)


@pytest.fixture
def resolver(test_config) -> CommuneResolver:
    return CommuneResolver(test_config)


class TestCommune:

    def test_frozen(self, paris):
        with pytest.raises(AttributeError):
            paris.population = 0

    def test_to_dict(self, versailles):
        data = versailles.to_dict()
        assert data["insee_code"] == "78646"
        assert data["department_name"] == "Yvelines"


class TestLookup:
    """Tests pour CommuneResolver.lookup()."""

    def test_empty_input_makes_no_call(self, resolver):
        with patch.object(CommuneResolver, "fetch_json") as mock_fetch:
            outcome = resolver.lookup("   ")
        assert outcome.status is ResolutionStatus.NOT_FOUND
        assert outcome.commune is None
        mock_fetch.assert_not_called()

    def test_query_is_trimmed(self, resolver):
        payload = [geo_candidate("Versailles", "78646", "78", 83918)]
        with patch.object(CommuneResolver, "fetch_json", return_value=payload) as mock_fetch:
            outcome = resolver.lookup("  Versailles ")
        assert outcome.query == "Versailles"
        params = mock_fetch.call_args.kwargs["params"]
        assert params["nom"] == "Versailles"
        assert params["fields"] == "nom,code,population,departement"
        assert params["boost"] == "population"
        assert params["limit"] == 20

    def test_found(self, resolver):
        payload = [geo_candidate("Versailles", "78646", "78", 83918)]
        with patch.object(CommuneResolver, "fetch_json", return_value=payload):
            outcome = resolver.lookup("Versailles")
        assert outcome.status is ResolutionStatus.FOUND
        assert outcome.commune == Commune(
            name="Versailles",
            department_name="Yvelines",
            population=83918,
            insee_code="78646",
            department_code="78",
        )
        assert outcome.candidates == 1

    def test_lyon_is_not_found(self, resolver):
        """Lyon (69) n'est pas un département d'Île-de-France."""
        payload = [geo_candidate("Lyon", "69123", "69", 522250)]
        with patch.object(CommuneResolver, "fetch_json", return_value=payload):
            outcome = resolver.lookup("Lyon")
        assert outcome.status is ResolutionStatus.NOT_FOUND
        assert outcome.candidates == 1

    def test_no_candidates(self, resolver):
        with patch.object(CommuneResolver, "fetch_json", return_value=[]):
            outcome = resolver.lookup("NoSuchPlaceXYZ")
        assert outcome.status is ResolutionStatus.NOT_FOUND

    def test_registry_unavailable(self, resolver):
        with patch.object(CommuneResolver, "fetch_json", return_value=None):
            outcome = resolver.lookup("Paris")
        assert outcome == ResolutionOutcome(query="Paris", status=ResolutionStatus.UNAVAILABLE)

    def test_unexpected_payload_is_unavailable(self, resolver):
        with patch.object(CommuneResolver, "fetch_json", return_value={"error": "x"}):
            outcome = resolver.lookup("Paris")
        assert outcome.status is ResolutionStatus.UNAVAILABLE


class TestResolve:
    """resolve() confond introuvable et indisponible (None)."""

    def test_resolve_returns_commune(self, resolver, saint_denis_candidates):
        with patch.object(CommuneResolver, "fetch_json", return_value=saint_denis_candidates):
            commune = resolver.resolve("Saint-Denis")
        assert commune.insee_code == "93066"
        assert commune.department_name == "Seine-Saint-Denis"

    def test_resolve_lyon_none(self, resolver):
        payload = [geo_candidate("Lyon", "69123", "69", 522250)]
        with patch.object(CommuneResolver, "fetch_json", return_value=payload):
            assert resolver.resolve("Lyon") is None

    def test_resolve_unavailable_none(self, resolver):
        with patch.object(CommuneResolver, "fetch_json", return_value=None):
            assert resolver.resolve("Paris") is None


class TestPickCandidate:
    """Le candidat le plus peuplé de la région l'emporte."""

    def test_highest_population_wins(self, resolver):
        candidates = [
            geo_candidate("Villeneuve-le-Roi", "94077", "94", 21000),
            geo_candidate("Villeneuve-Saint-Georges", "94078", "94", 33000),
            geo_candidate("Villeneuve-la-Garenne", "92078", "92", 25000),
        ]
        assert resolver.pick_candidate(candidates).insee_code == "94078"

    def test_ties_keep_api_order(self, resolver):
        candidates = [
            geo_candidate("A", "75001", "75", 1000),
            geo_candidate("B", "75002", "75", 1000),
        ]
        assert resolver.pick_candidate(candidates).name == "A"

    def test_missing_population_ranks_last(self, resolver):
        candidates = [
            geo_candidate("Sans", "91001", "91", None),
            geo_candidate("Avec", "91002", "91", 10),
        ]
        assert resolver.pick_candidate(candidates).name == "Avec"

    def test_non_integer_population_dropped(self, resolver):
        candidates = [geo_candidate("Sans", "91001", "91", "beaucoup")]
        assert resolver.pick_candidate(candidates).population is None

    def test_malformed_candidates_ignored(self, resolver):
        candidates = ["oops", {"nom": "Sans département"}, geo_candidate("Paris", "75056", "75", 2)]
        assert resolver.pick_candidate(candidates).name == "Paris"

    def test_none_in_region(self, resolver):
        assert resolver.pick_candidate([geo_candidate("Lyon", "69123", "69", 5)]) is None

    @pytest.mark.parametrize("bad_code", [["75"], {"code": "75"}, 75, None])
    def test_unhashable_or_non_string_department_code(self, resolver, bad_code):
        candidate = geo_candidate("Paris", "75056", "75", 2)
        candidate["departement"]["code"] = bad_code
        assert resolver.pick_candidate([candidate]) is None

    def test_malformed_department_code_resolves_to_none(self, resolver):
        candidate = geo_candidate("Paris", "75056", "75", 2)
        candidate["departement"]["code"] = ["75"]
        with patch.object(CommuneResolver, "fetch_json", return_value=[candidate]):
            outcome = resolver.lookup("Paris")
            assert resolver.resolve("Paris") is None
        assert outcome.status == ResolutionStatus.NOT_FOUND
