# -*- coding: utf-8 -*-
"""Shared fixtures for the commune eco-metrics tests."""

from __future__ import annotations

from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest

from config.settings import (
    EnergyConfig,
    GeoConfig,
    NetworkConfig,
    ProjectConfig,
    SourcesConfig,
)
from src.commune import Commune


@pytest.fixture
def test_config() -> ProjectConfig:
    """Test configuration: no retries, small pool, quiet logs."""
    return ProjectConfig(
        geo=GeoConfig(geo_api_url="https://geo.test/communes"),
        sources=SourcesConfig(
            events_domain="events.test",
            energy_domain="energy.test",
            events_limit=10,
        ),
        energy=EnergyConfig(),
        network=NetworkConfig(request_timeout=1, max_retries=0, max_workers=4),
        log_level="WARNING",
    )


@pytest.fixture
def paris() -> Commune:
    return Commune(
        name="Paris",
        department_name="Paris",
        population=2133111,
        insee_code="75056",
        department_code="75",
    )


@pytest.fixture
def versailles() -> Commune:
    return Commune(
        name="Versailles",
        department_name="Yvelines",
        population=83918,
        insee_code="78646",
        department_code="78",
    )


@pytest.fixture
def no_population_commune() -> Commune:
    """Commune whose population is unknown."""
    return Commune(
        name="Hameau",
        department_name="Essonne",
        population=None,
        insee_code="91999",
        department_code="91",
    )


def geo_candidate(name: str, code: str, dept: str, population: Any) -> Dict[str, Any]:
    """A candidate as returned by geo.api.gouv.fr/communes."""
    return {
        "nom": name,
        "code": code,
        "population": population,
        "departement": {"code": dept, "nom": dept},
    }


@pytest.fixture
def saint_denis_candidates() -> List[Dict[str, Any]]:
    """Homonyms: Saint-Denis (93) and Saint-Denis (974, La Réunion)."""
    return [
        geo_candidate("Saint-Denis", "97411", "974", 153810),
        geo_candidate("Saint-Denis", "93066", "93", 113942),
        geo_candidate("Saint-Denis-lès-Bourg", "01344", "01", 5800),
    ]


def ore_rows(
    consumption_field: str = "consommation_mwh",
    elec: float = 10000.0,
    gas: float = 5000.0,
) -> List[Dict[str, Any]]:
    """Rows of the Agence ORE annual consumption dataset."""
    return [
        {"code_commune": "78646", "annee": "2024", "filiere": "Electricité",
         consumption_field: elec},
        {"code_commune": "78646", "annee": "2024", "filiere": "Gaz",
         consumption_field: gas},
    ]


def count_payload(count: int) -> Dict[str, Any]:
    """Response of an ODS v2.1 `select=count(*) as c` query."""
    return {"total_count": 1, "results": [{"c": count}]}


@pytest.fixture
def mock_response() -> MagicMock:
    """Successful requests.Response mock returning an empty list."""
    response = MagicMock()
    response.ok = True
    response.status_code = 200
    response.json.return_value = []
    response.text = "[]"
    return response
