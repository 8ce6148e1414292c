# -*- coding: utf-8 -*-
"""
Résolution des communes — texte libre → commune d'Île-de-France.
================================================================

Interroge l'API Géo (geo.api.gouv.fr) avec le nom saisi, puis ne garde
que les candidats dont le département figure dans la liste autorisée
(`config.geo.departments`). Le candidat le plus peuplé l'emporte.

Source : https://geo.api.gouv.fr/decoupage-administratif/communes
Authentification : Aucune (API ouverte)

Deux contrats :
    - `resolve(nom)` → Commune ou None (introuvable OU API indisponible)
    - `lookup(nom)`  → ResolutionOutcome, qui distingue les deux cas

Usage:
    >>> from src.commune import CommuneResolver
    >>> resolver = CommuneResolver()
    >>> commune = resolver.resolve("  Versailles ")
    >>> commune.department_name
    'Yvelines'
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from config.settings import ProjectConfig
from src.http_utils import HttpClientMixin


@dataclass(frozen=True)
class Commune:
    """Commune canonique, construite à chaque résolution (jamais cachée).

    Attributes:
        name: Nom officiel de la commune.
        department_name: Nom lisible du département.
        population: Population légale, None si inconnue.
        insee_code: Code officiel géographique (COG) de la commune.
        department_code: Code du département.
    """
    name: str
    department_name: str
    population: Optional[int]
    insee_code: str
    department_code: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "department_name": self.department_name,
            "population": self.population,
            "insee_code": self.insee_code,
            "department_code": self.department_code,
        }


class ResolutionStatus(Enum):
    """Issue d'une résolution de commune.

    Values:
        FOUND: Une commune de la région a été trouvée.
        NOT_FOUND: Saisie vide, aucun candidat, ou aucun candidat en région.
        UNAVAILABLE: L'API Géo n'a pas répondu correctement.
    """
    FOUND = "found"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class ResolutionOutcome:
    """Résultat détaillé de `CommuneResolver.lookup()`."""
    query: str
    status: ResolutionStatus
    commune: Optional[Commune] = None
    candidates: int = 0


class CommuneResolver(HttpClientMixin):
    """Résout un nom de commune saisi librement.

    Une requête sortante par appel, sans cache ni retry.
    """

    def __init__(self, config: Optional[ProjectConfig] = None) -> None:
        if config is None:
            from config.settings import config as project_config
            config = project_config
        self.config = config
        self.network = config.network
        self.logger = logging.getLogger("resolver")

    def resolve(self, raw_name: str) -> Optional[Commune]:
        """Retourne la commune correspondante, ou None (introuvable)."""
        return self.lookup(raw_name).commune

    def lookup(self, raw_name: str) -> ResolutionOutcome:
        """Résout `raw_name` et indique pourquoi la résolution a échoué.

        Args:
            raw_name: Nom saisi (les espaces en bordure sont ignorés).

        Returns:
            ResolutionOutcome avec le statut et la commune éventuelle.
        """
        name = (raw_name or "").strip()
        if not name:
            return ResolutionOutcome(query=name, status=ResolutionStatus.NOT_FOUND)

        params = {
            "nom": name,
            "fields": "nom,code,population,departement",
            "boost": "population",
            "limit": self.config.geo.candidate_limit,
        }
        payload = self.fetch_json(self.config.geo.geo_api_url, params=params)

        if payload is None or not isinstance(payload, list):
            self.logger.warning("API Géo indisponible pour '%s'", name)
            return ResolutionOutcome(query=name, status=ResolutionStatus.UNAVAILABLE)

        commune = self.pick_candidate(payload)
        if commune is None:
            self.logger.info(
                "Aucune commune de la région %s pour '%s' (%d candidats)",
                self.config.geo.region_code, name, len(payload),
            )
            return ResolutionOutcome(
                query=name,
                status=ResolutionStatus.NOT_FOUND,
                candidates=len(payload),
            )

        self.logger.info(
            "'%s' → %s (%s, INSEE %s, %s hab.)",
            name, commune.name, commune.department_name,
            commune.insee_code, commune.population,
        )
        return ResolutionOutcome(
            query=name,
            status=ResolutionStatus.FOUND,
            commune=commune,
            candidates=len(payload),
        )

    def pick_candidate(self, candidates: List[Any]) -> Optional[Commune]:
        """Filtre les candidats sur la région et garde le plus peuplé.

        Le tri est stable : à population égale, l'ordre de l'API est conservé.
        """
        departments = self.config.geo.departments
        in_region = [
            c for c in candidates
            if isinstance(c, dict) and _department_code(c) in departments
        ]
        if not in_region:
            return None

        best = sorted(in_region, key=_population_key, reverse=True)[0]
        dept_code = _department_code(best)
        population = best.get("population")
        return Commune(
            name=best.get("nom", ""),
            department_name=departments[dept_code],
            population=population if _is_int(population) else None,
            insee_code=str(best.get("code", "")),
            department_code=dept_code,
        )


def _department_code(candidate: Dict[str, Any]) -> Optional[str]:
    departement = candidate.get("departement")
    if isinstance(departement, dict):
        code = departement.get("code")
        if isinstance(code, str):
            return code
    return None


def _population_key(candidate: Dict[str, Any]) -> float:
    population = candidate.get("population")
    return float(population) if _is_int(population) else 0.0


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
