# -*- coding: utf-8 -*-
"""
Source énergie — consommation électricité/gaz par habitant (Agence ORE).
========================================================================

Récupère les consommations annuelles par commune et par filière depuis
le portail de l'Agence ORE (Opérateurs de Réseaux d'Énergie), puis les
ramène en kWh par habitant.

Source : https://portail.agenceore.fr (API Explore v2.1)
Jeu : consommation-annuelle-d-electricite-et-gaz-par-commune
Authentification : Aucune (l'accès peut toutefois être refusé : 403/410)

NOTES :
    - Le schéma du jeu n'est pas contractuel. Les colonnes « filière » et
      « consommation » sont découvertes à chaque requête par
      `resolve_energy_fields()` (motifs ordonnés, premier trouvé gagnant).
    - L'unité est lue dans le nom de la colonne : 'kwh' → ×1, sinon
      (MWh ou inconnue) → ×1000.
    - Une valeur par habitant > 20 000 kWh/an est jugée aberrante → None.

Politique de repli :
    1. Les millésimes configurés sont essayés du plus récent au plus ancien.
    2. Le premier millésime donnant une valeur élec OU gaz est retenu
       (estimated=False).
    3. Sinon, moyennes fixes (3000 / 1500 kWh/hab) avec estimated=True.
    4. Toute erreur d'accès ouvre le disjoncteur de l'adaptateur : plus
       aucun appel réseau vers cette source pour la vie de l'instance.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional, Pattern, Sequence, Tuple

import pandas as pd

from config.settings import ProjectConfig
from src.adapters.base import BaseAdapter, ods_records_url
from src.commune import Commune

# Colonne filière (vecteur énergétique), par ordre de préférence
CARRIER_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"filiere", re.IGNORECASE),
    re.compile(r"energie", re.IGNORECASE),
)

# Colonne consommation, par ordre de préférence
CONSUMPTION_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"consommation.*mwh", re.IGNORECASE),
    re.compile(r"consommation.*kwh", re.IGNORECASE),
    re.compile(r"conso.*mwh", re.IGNORECASE),
    re.compile(r"conso.*kwh", re.IGNORECASE),
    re.compile(r"consommation", re.IGNORECASE),
    re.compile(r"conso", re.IGNORECASE),
)

_GAS_RE = re.compile(r"gaz")
_ELEC_RE = re.compile(r"elec|élec|electric")


# =============================================================================
# Fonctions pures (testables sans réseau)
# =============================================================================

def find_field(names: Sequence[str], patterns: Sequence[Pattern[str]]) -> Optional[str]:
    """Premier nom de colonne correspondant au premier motif qui trouve."""
    for pattern in patterns:
        for name in names:
            if name and pattern.search(name):
                return name
    return None


def resolve_energy_fields(names: Sequence[str]) -> Optional[Tuple[str, str]]:
    """Découvre les colonnes (filière, consommation) d'un schéma ORE.

    Args:
        names: Noms des colonnes disponibles.

    Returns:
        (colonne_filière, colonne_consommation), ou None si l'une manque.

    >>> resolve_energy_fields(["code_commune", "filiere", "consommation_mwh"])
    ('filiere', 'consommation_mwh')
    """
    carrier = find_field(names, CARRIER_PATTERNS)
    consumption = find_field(names, CONSUMPTION_PATTERNS)
    if not carrier or not consumption:
        return None
    return carrier, consumption


def kwh_factor(consumption_field: str) -> float:
    """Facteur de conversion vers le kWh déduit du nom de colonne."""
    return 1.0 if "kwh" in consumption_field.lower() else 1000.0


def sum_by_carrier(
    rows: List[Dict[str, Any]],
    carrier_field: str,
    consumption_field: str,
) -> Tuple[float, float]:
    """Somme les consommations (kWh) des lignes électricité et gaz.

    Une magnitude non numérique compte pour 0.

    Returns:
        (total_électricité_kwh, total_gaz_kwh)
    """
    frame = pd.DataFrame(rows)
    carrier = frame[carrier_field].fillna("").astype(str).str.lower()
    kwh = (
        pd.to_numeric(frame[consumption_field], errors="coerce").fillna(0.0)
        * kwh_factor(consumption_field)
    )
    elec = float(kwh[carrier.str.contains(_ELEC_RE)].sum())
    gas = float(kwh[carrier.str.contains(_GAS_RE)].sum())
    return elec, gas


# =============================================================================
# Disjoncteur
# =============================================================================

class CircuitBreaker:
    """Disjoncteur à un seul état : une fois ouvert, il le reste.

    Possédé par l'adaptateur (pas d'état global) : chaque instance de test
    part d'un disjoncteur fermé. Pas de verrou : deux threads peuvent faire
    chacun un appel inutile avant l'ouverture, sans incohérence.
    """

    def __init__(self, tripped: bool = False) -> None:
        self._tripped = tripped

    @property
    def tripped(self) -> bool:
        return self._tripped

    def trip(self) -> None:
        self._tripped = True

    def reset(self) -> None:
        """Referme le disjoncteur (non utilisé par le pipeline)."""
        self._tripped = False


@dataclass(frozen=True)
class EnergyPerHab:
    """Consommations par habitant d'un millésime (None si indisponible)."""
    elec_kwh_per_hab: Optional[float] = None
    gas_kwh_per_hab: Optional[float] = None

    @property
    def has_value(self) -> bool:
        return self.elec_kwh_per_hab is not None or self.gas_kwh_per_hab is not None


# =============================================================================
# Adaptateur
# =============================================================================

class EnergyAdapter(BaseAdapter):
    """Consommation électricité/gaz par habitant avec repli multi-millésimes.

    Auto-enregistré comme 'energy' dans l'AdapterRegistry.
    """

    source_name: ClassVar[str] = "energy"
    fields: ClassVar[Tuple[str, ...]] = (
        "elec_kwh_per_hab", "gas_kwh_per_hab", "elec_estimated", "gas_estimated",
    )

    def __init__(
        self,
        config: Optional[ProjectConfig] = None,
        breaker: Optional[CircuitBreaker] = None,
    ) -> None:
        super().__init__(config)
        self.breaker = breaker or CircuitBreaker()

    def fetch(self, commune: Commune) -> Dict[str, Any]:
        """Essaie chaque millésime, puis se rabat sur les moyennes."""
        energy = self.config.energy
        for year in energy.years:
            if self.breaker.tripped:
                self.logger.debug("Disjoncteur ouvert : millésimes suivants ignorés")
                break
            result = self.fetch_year(commune, year)
            if result.has_value:
                self.logger.info(
                    "Énergie %s (%d) : élec=%s kWh/hab, gaz=%s kWh/hab",
                    commune.name, year, result.elec_kwh_per_hab, result.gas_kwh_per_hab,
                )
                return {
                    "elec_kwh_per_hab": result.elec_kwh_per_hab,
                    "gas_kwh_per_hab": result.gas_kwh_per_hab,
                    "elec_estimated": False,
                    "gas_estimated": False,
                }

        self.logger.info(
            "Énergie %s : aucune donnée exploitable, moyennes estimées", commune.name
        )
        return {
            "elec_kwh_per_hab": energy.avg_elec_kwh_per_hab,
            "gas_kwh_per_hab": energy.avg_gas_kwh_per_hab,
            "elec_estimated": True,
            "gas_estimated": True,
        }

    def fetch_year(self, commune: Commune, year: int) -> EnergyPerHab:
        """Consommations par habitant d'un millésime, sans repli.

        Returns:
            EnergyPerHab, vide si la source est indisponible, le schéma
            non reconnu, la population inconnue, ou le disjoncteur ouvert.
        """
        if self.breaker.tripped:
            return EnergyPerHab()

        energy = self.config.energy
        params = {
            "select": "*",
            "limit": energy.rows_limit,
            "refine.code_commune": commune.insee_code,
            "refine.annee": str(year),
        }
        url = ods_records_url(
            self.config.sources.energy_domain, self.config.sources.energy_dataset
        )
        data = self.fetch_json(url, params=params, quiet_statuses=energy.quiet_statuses)
        if data is None:
            self.logger.warning("Source énergie inaccessible : disjoncteur ouvert")
            self.breaker.trip()
            return EnergyPerHab()

        rows = data.get("results") if isinstance(data, dict) else None
        rows = [r for r in rows if isinstance(r, dict)] if isinstance(rows, list) else []
        if not rows:
            self.logger.debug("Aucune ligne ORE pour %s en %d", commune.insee_code, year)
            return EnergyPerHab()

        matched = resolve_energy_fields(list(rows[0].keys()))
        if matched is None:
            self.logger.warning(
                "Colonnes filière/consommation introuvables : %s", list(rows[0].keys())
            )
            return EnergyPerHab()

        population = commune.population
        if not population or population <= 0:
            return EnergyPerHab()

        elec_kwh, gas_kwh = sum_by_carrier(rows, *matched)
        return EnergyPerHab(
            elec_kwh_per_hab=self._plausible(elec_kwh / population),
            gas_kwh_per_hab=self._plausible(gas_kwh / population),
        )

    def _plausible(self, value: float) -> Optional[float]:
        """None si la valeur dépasse le plafond de plausibilité."""
        return None if value > self.config.energy.max_kwh_per_hab else value
