# -*- coding: utf-8 -*-
"""
Indicateurs synthétiques — valeurs de démonstration déterministes.
==================================================================

Eau, déchets, carburant, émissions GES, consommation d'eau, qualité de
l'air et part d'énergies renouvelables ne disposent pas (encore) d'une
source ouverte à la maille communale. Ces adaptateurs produisent des
valeurs plausibles, DÉTERMINISTES : un hachage FNV-1a 32 bits d'une
graine textuelle est ramené dans [0, 1) puis projeté dans une plage fixe.

Même graine → même valeur, au bit près (reproductibilité des tests et
démos). Chaque indicateur est isolé derrière `SyntheticIndicatorAdapter` :
une vraie source pourra le remplacer sans toucher à l'agrégateur.

Graines :
    - eau / déchets / carburant : '<code INSEE>:water' (…:waste, …:fuel)
    - GES        : 'ges:<nom>'
    - eau (L/j)  : 'water-consum:<nom>'
    - air        : 'air:<nom>'
    - renouvelables : 'renew:<nom>'
"""

from __future__ import annotations

import math
from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional, Tuple

from src.adapters.base import BaseAdapter
from src.commune import Commune

_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193
_MASK_32 = 0xFFFFFFFF


def hash_unit_interval(text: str) -> float:
    """Hachage FNV-1a 32 bits de `text` (UTF-8) ramené dans [0, 1).

    >>> hash_unit_interval("75056:water") == hash_unit_interval("75056:water")
    True
    """
    h = _FNV_OFFSET
    for byte in text.encode("utf-8"):
        h ^= byte
        h = (h * _FNV_PRIME) & _MASK_32
    return h / 2 ** 32


def round_half_up(value: float, digits: int = 0) -> float:
    """Arrondi commercial (0.5 → 1), contrairement à round() en Python."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


@dataclass(frozen=True)
class PlaceholderBand:
    """Plage de valeurs plausibles : scale × (low + r × span), arrondie.

    Attributes:
        low: Borne basse.
        span: Largeur de la plage.
        digits: Décimales conservées (0 → entier).
        scale: Facteur appliqué après la projection (moyenne de référence).
    """
    low: float
    span: float
    digits: int = 0
    scale: float = 1.0

    def project(self, r: float) -> float:
        value = round_half_up(self.scale * (self.low + r * self.span), self.digits)
        return int(value) if self.digits == 0 else value


# Plages par indicateur (unités dans les noms de champs)
BANDS: Dict[str, PlaceholderBand] = {
    "water": PlaceholderBand(38000, 42000),      # L/an/hab
    "waste": PlaceholderBand(240, 260),          # kg/an/hab
    "fuel": PlaceholderBand(220, 380),           # L/an/hab
    "ges": PlaceholderBand(0.85, 0.3, digits=2, scale=2.5),  # tCO2eq/hab
    "water-consum": PlaceholderBand(135, 55),    # L/jour/hab
    "air": PlaceholderBand(55, 90),              # indice
    "renew": PlaceholderBand(12, 20),            # %
}


def placeholder_value(seed: str, band: str) -> float:
    """Valeur déterministe de la plage `band` pour la graine `seed`."""
    return BANDS[band].project(hash_unit_interval(seed))


def _has_population(commune: Commune) -> bool:
    return bool(commune.population) and commune.population > 0


# =============================================================================
# Adaptateurs
# =============================================================================

class SyntheticIndicatorAdapter(BaseAdapter):
    """Base des indicateurs calculés localement (aucun appel réseau).

    Sous-classes : définir `source_name`, `fields` et `values()`.
    """

    def fetch(self, commune: Commune) -> Dict[str, Any]:
        values = self.values(commune)
        self.logger.debug("%s : %s → %s", self.source_name, commune.name, values)
        return values

    @abstractmethod
    def values(self, commune: Commune) -> Dict[str, Any]:
        """Champs de l'indicateur pour la commune."""
        ...


class UtilitiesPlaceholderAdapter(SyntheticIndicatorAdapter):
    """Eau, déchets et carburant par habitant, graine = code INSEE."""

    source_name: ClassVar[str] = "utilities_placeholder"
    fields: ClassVar[Tuple[str, ...]] = (
        "water_l_per_hab", "waste_kg_per_hab", "fuel_l_per_hab",
        "water_estimated", "waste_estimated", "fuel_estimated",
    )

    def values(self, commune: Commune) -> Dict[str, Any]:
        return utilities_placeholders(commune.insee_code)


def utilities_placeholders(insee_code: str) -> Dict[str, Any]:
    """Valeurs de démonstration eau/déchets/carburant d'un code INSEE."""
    return {
        "water_l_per_hab": placeholder_value(f"{insee_code}:water", "water"),
        "waste_kg_per_hab": placeholder_value(f"{insee_code}:waste", "waste"),
        "fuel_l_per_hab": placeholder_value(f"{insee_code}:fuel", "fuel"),
        "water_estimated": True,
        "waste_estimated": True,
        "fuel_estimated": True,
    }


class GesEmissionsAdapter(SyntheticIndicatorAdapter):
    """Émissions de GES (tCO2eq/hab) autour d'une moyenne de 2,5 ± 15 %."""

    source_name: ClassVar[str] = "ges_emissions"
    fields: ClassVar[Tuple[str, ...]] = ("ges_emissions_tons_per_hab",)

    def values(self, commune: Commune) -> Dict[str, Any]:
        value: Optional[float] = None
        if _has_population(commune):
            value = placeholder_value(f"ges:{commune.name}", "ges")
        return {"ges_emissions_tons_per_hab": value}


class WaterConsumptionAdapter(SyntheticIndicatorAdapter):
    """Consommation d'eau domestique (L/jour/hab)."""

    source_name: ClassVar[str] = "water_consumption"
    fields: ClassVar[Tuple[str, ...]] = ("water_consum_l_per_hab",)

    def values(self, commune: Commune) -> Dict[str, Any]:
        value = None
        if _has_population(commune):
            value = placeholder_value(f"water-consum:{commune.name}", "water-consum")
        return {"water_consum_l_per_hab": value}


class AirQualityAdapter(SyntheticIndicatorAdapter):
    source_name: ClassVar[str] = "air_quality"
    fields: ClassVar[Tuple[str, ...]] = ("air_quality_index",)

    def values(self, commune: Commune) -> Dict[str, Any]:
        return {"air_quality_index": placeholder_value(f"air:{commune.name}", "air")}


class RenewableEnergyAdapter(SyntheticIndicatorAdapter):
    source_name: ClassVar[str] = "renewable_energy"
    fields: ClassVar[Tuple[str, ...]] = ("renewable_energy_pct",)

    def values(self, commune: Commune) -> Dict[str, Any]:
        return {"renewable_energy_pct": placeholder_value(f"renew:{commune.name}", "renew")}
