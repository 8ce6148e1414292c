# -*- coding: utf-8 -*-
"""
Configuration centralisée de l'éco-comparateur de communes.
===========================================================

Regroupe TOUS les paramètres du projet en un seul endroit.
Les valeurs sont chargées depuis le fichier .env (via python-dotenv)
avec des valeurs par défaut sensées.

Architecture :
    ProjectConfig
    ├── GeoConfig       — Région cible, départements autorisés, API géo
    ├── SourcesConfig   — Domaines et jeux de données Opendatasoft
    ├── EnergyConfig    — Années de repli, moyennes, plafond de plausibilité
    └── NetworkConfig   — Timeouts, retries, parallélisme

Usage:
    >>> from config.settings import config
    >>> sorted(config.geo.departments)
    ['75', '77', '78', '91', '92', '93', '94', '95']
    >>> config.energy.years
    (2024, 2023, 2022, 2021)

Extensibilité:
    Pour ajouter un nouveau paramètre :
    1. Ajouter l'attribut dans la dataclass appropriée
    2. Ajouter la variable d'environnement correspondante dans .env.example
    3. Mapper la variable dans from_env() si nécessaire
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Tuple

from dotenv import load_dotenv

# Charger le .env dès l'import du module
load_dotenv()


# =============================================================================
# Référentiels statiques
# =============================================================================

# Départements d'Île-de-France (code INSEE → nom lisible)
IDF_DEPARTMENTS: Dict[str, str] = {
    "75": "Paris",
    "77": "Seine-et-Marne",
    "78": "Yvelines",
    "91": "Essonne",
    "92": "Hauts-de-Seine",
    "93": "Seine-Saint-Denis",
    "94": "Val-de-Marne",
    "95": "Val-d'Oise",
}

# Termes de recherche des événements « éco » (ordre conservé dans la requête)
ECO_SEARCH_TERMS: Tuple[str, ...] = (
    "climat", "écologie", "ecologie", "recycl", "déchet", "dechet",
    "biodivers", "zéro déchet", "zero dechet", "cleanwalk", "ramassage",
    "repair", "atelier réparation", "mobilité", "mobilite", "vélo", "velo",
    "sobriété", "sobriete", "énergie", "energie",
)

# Mots-clés appliqués localement (titre + description) pour la catégorie
# « autres événements éco » de la carte
ECO_OTHER_KEYWORDS: Tuple[str, ...] = (
    "clean", "ramass", "recycl", "compost", "repair", "atelier", "biodivers",
    "nettoy", "zero dechet", "cleanwalk", "éco", "ecolo", "écologie",
)


def _parse_departments(raw: str) -> Dict[str, str]:
    """Construit la table des départements autorisés depuis 'TARGET_DEPARTMENTS'.

    Les codes inconnus du référentiel IDF gardent leur code comme nom.
    """
    codes = [c.strip() for c in raw.split(",") if c.strip()]
    return {code: IDF_DEPARTMENTS.get(code, code) for code in codes}


def _parse_years(raw: str) -> Tuple[int, ...]:
    """'2024,2023' → (2024, 2023), ordre conservé."""
    return tuple(int(y) for y in raw.split(",") if y.strip())


# =============================================================================
# Sous-configurations thématiques
# =============================================================================

@dataclass(frozen=True)
class GeoConfig:
    """Configuration géographique du périmètre de résolution.

    Attributes:
        region_code: Code INSEE de la région cible (11 = Île-de-France).
        departments: Départements autorisés (code → nom). Une commune hors
                     de cette table est considérée comme introuvable.
        geo_api_url: Endpoint communes de l'API Géo (geo.api.gouv.fr).
        candidate_limit: Nombre max de candidats demandés à l'API Géo.
    """
    region_code: str = "11"
    departments: Dict[str, str] = field(
        default_factory=lambda: dict(IDF_DEPARTMENTS)
    )
    geo_api_url: str = "https://geo.api.gouv.fr/communes"
    candidate_limit: int = 20


@dataclass(frozen=True)
class SourcesConfig:
    """Jeux de données Opendatasoft (API Explore v2.1) interrogés.

    Attributes:
        events_domain: Portail open data régional des événements.
        nature_dataset: Animations nature Île-de-France.
        public_dataset: Agenda des événements publics (OpenAgenda).
        energy_domain: Portail de l'Agence ORE.
        energy_dataset: Consommation annuelle électricité/gaz par commune.
        eco_terms: Disjonction de recherche des événements éco.
        eco_other_keywords: Filtre local de la catégorie 'eco_other'.
        events_limit: Nombre max d'événements listés par catégorie.
    """
    events_domain: str = "data.iledefrance.fr"
    nature_dataset: str = "ile-de-france-nature-animations"
    public_dataset: str = "evenements-publics-cibul"
    energy_domain: str = "portail.agenceore.fr"
    energy_dataset: str = "consommation-annuelle-d-electricite-et-gaz-par-commune"
    eco_terms: Tuple[str, ...] = ECO_SEARCH_TERMS
    eco_other_keywords: Tuple[str, ...] = ECO_OTHER_KEYWORDS
    events_limit: int = 100


@dataclass(frozen=True)
class EnergyConfig:
    """Politique de repli de la source énergie (Agence ORE).

    Attributes:
        years: Millésimes essayés dans l'ordre (le plus récent d'abord).
        avg_elec_kwh_per_hab: Moyenne électricité retournée en estimation.
        avg_gas_kwh_per_hab: Moyenne gaz retournée en estimation.
        max_kwh_per_hab: Plafond de plausibilité (au-delà → None).
        rows_limit: Nombre max de lignes demandées par millésime.
        quiet_statuses: Codes HTTP d'accès refusé loggés en DEBUG.
    """
    years: Tuple[int, ...] = (2024, 2023, 2022, 2021)
    avg_elec_kwh_per_hab: float = 3000.0
    avg_gas_kwh_per_hab: float = 1500.0
    max_kwh_per_hab: float = 20000.0
    rows_limit: int = 100
    quiet_statuses: Tuple[int, ...] = (403, 404, 410)


@dataclass(frozen=True)
class NetworkConfig:
    """Configuration réseau des appels HTTP.

    Une seule tentative par source par défaut (max_retries=0) : le seul
    mécanisme de nouvelle tentative du pipeline est la boucle de millésimes
    de la source énergie.

    Attributes:
        request_timeout: Timeout HTTP en secondes par requête.
        max_retries: Nombre de retries urllib3 sur 429/5xx.
        retry_backoff_factor: Facteur exponentiel entre retries.
        max_workers: Taille du pool de threads de l'agrégateur.
    """
    request_timeout: int = 15
    max_retries: int = 0
    retry_backoff_factor: float = 0.5
    max_workers: int = 9


# =============================================================================
# Configuration principale (agrège toutes les sous-configs)
# =============================================================================

@dataclass(frozen=True)
class ProjectConfig:
    """Configuration globale du projet.

    Regroupe toutes les sous-configurations thématiques.
    Peut être instanciée directement (tests) ou via la factory `from_env()`.

    Attributes:
        geo: Configuration géographique.
        sources: Jeux de données interrogés.
        energy: Politique de repli énergie.
        network: Configuration réseau.
        log_level: Niveau de logging global.
    """
    geo: GeoConfig = field(default_factory=GeoConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    energy: EnergyConfig = field(default_factory=EnergyConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> ProjectConfig:
        """Construit la configuration à partir des variables d'environnement.

        Charge les variables depuis le fichier .env et les mappe
        sur les sous-configurations. Utilise les valeurs par défaut
        si une variable est absente.

        Returns:
            Instance de ProjectConfig complètement initialisée.
        """
        return cls(
            geo=GeoConfig(
                region_code=os.getenv("TARGET_REGION", "11"),
                departments=_parse_departments(
                    os.getenv("TARGET_DEPARTMENTS", ",".join(IDF_DEPARTMENTS))
                ),
                geo_api_url=os.getenv(
                    "GEO_API_URL", "https://geo.api.gouv.fr/communes"
                ),
            ),
            sources=SourcesConfig(
                events_domain=os.getenv("EVENTS_DOMAIN", "data.iledefrance.fr"),
                energy_domain=os.getenv("ENERGY_DOMAIN", "portail.agenceore.fr"),
                events_limit=int(os.getenv("EVENTS_LIMIT", "100")),
            ),
            energy=EnergyConfig(
                years=_parse_years(os.getenv("ENERGY_YEARS", "2024,2023,2022,2021")),
                avg_elec_kwh_per_hab=float(os.getenv("ENERGY_AVG_ELEC_KWH", "3000")),
                avg_gas_kwh_per_hab=float(os.getenv("ENERGY_AVG_GAS_KWH", "1500")),
                max_kwh_per_hab=float(os.getenv("ENERGY_MAX_KWH_PER_HAB", "20000")),
            ),
            network=NetworkConfig(
                request_timeout=int(os.getenv("REQUEST_TIMEOUT", "15")),
                max_retries=int(os.getenv("MAX_RETRIES", "0")),
                retry_backoff_factor=float(os.getenv("RETRY_BACKOFF", "0.5")),
                max_workers=int(os.getenv("MAX_WORKERS", "9")),
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


# =============================================================================
# Instance globale — importable directement
# =============================================================================
# Usage: from config.settings import config
config = ProjectConfig.from_env()
