# -*- coding: utf-8 -*-
"""
Agrégateur de métriques — une commune, toutes les sources en parallèle.
=======================================================================

`MetricsAggregator.build_metrics(ville)` :
    1. résout la commune (None si introuvable ou hors région) ;
    2. lance `run()` de chaque adaptateur dans un ThreadPoolExecutor ;
    3. attend TOUTES les sources, puis construit un MetricsRecord en une
       seule fois (champ absent → None, indicateur absent → False).

Une source en échec n'affecte que ses propres champs : `BaseAdapter.run()`
ne propage jamais d'exception.

Usage:
    >>> from src.metrics import get_aggregator
    >>> record = get_aggregator().build_metrics("Versailles")
    >>> record.commune.department_name
    'Yvelines'
    >>> result = get_aggregator().compare("Paris", "Créteil")
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional, Tuple

from config.settings import ProjectConfig
from src.adapters import AdapterRegistry, BaseAdapter, CircuitBreaker, EnergyAdapter
from src.commune import Commune, CommuneResolver

logger = logging.getLogger("metrics")


@dataclass(frozen=True)
class MetricsRecord:
    """Indicateurs d'une commune. Chaque valeur est indépendamment nullable.

    Attributes:
        commune: Commune résolue.
        nature_events_count: Animations nature mentionnant la commune.
        public_events_count: Événements publics mentionnant la commune.
        public_eco_events_count: Événements publics à thématique éco.
        elec_kwh_per_hab / gas_kwh_per_hab: Consommation annuelle (kWh/hab).
        elec_estimated / gas_estimated: True si moyenne nationale de repli.
        water_l_per_hab / waste_kg_per_hab / fuel_l_per_hab: Valeurs de démo.
        water_estimated / waste_estimated / fuel_estimated: Toujours True
            quand la valeur est synthétique.
        ges_emissions_tons_per_hab: tCO2eq/hab (None sans population).
        water_consum_l_per_hab: L/jour/hab (None sans population).
        air_quality_index: Indice de qualité de l'air.
        renewable_energy_pct: Part d'énergies renouvelables (%).
    """
    commune: Commune
    nature_events_count: Optional[int] = None
    public_events_count: Optional[int] = None
    public_eco_events_count: Optional[int] = None
    elec_kwh_per_hab: Optional[float] = None
    gas_kwh_per_hab: Optional[float] = None
    elec_estimated: bool = False
    gas_estimated: bool = False
    water_l_per_hab: Optional[int] = None
    waste_kg_per_hab: Optional[int] = None
    fuel_l_per_hab: Optional[int] = None
    water_estimated: bool = False
    waste_estimated: bool = False
    fuel_estimated: bool = False
    ges_emissions_tons_per_hab: Optional[float] = None
    water_consum_l_per_hab: Optional[int] = None
    air_quality_index: Optional[int] = None
    renewable_energy_pct: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Vue à plat, sérialisable en JSON."""
        data: Dict[str, Any] = {
            "city": self.commune.name,
            "department": self.commune.department_name,
            "population": self.commune.population,
            "insee_code": self.commune.insee_code,
        }
        for name in METRIC_FIELDS:
            data[name] = getattr(self, name)
        return data


# Champs métriques (hors commune), dans l'ordre de déclaration
METRIC_FIELDS: Tuple[str, ...] = tuple(
    f.name for f in fields(MetricsRecord) if f.name != "commune"
)


@dataclass(frozen=True)
class CompareResult:
    """Paire de résultats du comparateur (None = ville introuvable)."""
    first: Optional[MetricsRecord]
    second: Optional[MetricsRecord]


def default_value(name: str) -> Any:
    """Valeur d'un champ qu'aucune source n'a fourni."""
    return False if name.endswith("_estimated") else None


class MetricsAggregator:
    """Résout une commune puis interroge toutes les sources en parallèle.

    Args:
        config: Configuration projet. Défaut : `config.settings.config`.
        resolver: Résolveur de communes (injectable pour les tests).
        adapters: Adaptateurs à interroger. Défaut : tous ceux enregistrés.
    """

    def __init__(
        self,
        config: Optional[ProjectConfig] = None,
        resolver: Optional[CommuneResolver] = None,
        adapters: Optional[List[BaseAdapter]] = None,
    ) -> None:
        if config is None:
            from config.settings import config as project_config
            config = project_config
        self.config = config
        self.resolver = resolver or CommuneResolver(config)
        self.adapters = (
            adapters if adapters is not None else AdapterRegistry.create_all(config)
        )

    @property
    def adapter_names(self) -> List[str]:
        return [a.source_name for a in self.adapters]

    @property
    def energy_breaker(self) -> Optional[CircuitBreaker]:
        """Disjoncteur de la source énergie, s'il y en a une."""
        for adapter in self.adapters:
            if isinstance(adapter, EnergyAdapter):
                return adapter.breaker
        return None

    def build_metrics(self, city_name: str) -> Optional[MetricsRecord]:
        """Construit le MetricsRecord d'une ville saisie librement.

        Args:
            city_name: Nom de la commune (espaces en bordure ignorés).

        Returns:
            MetricsRecord, ou None si la commune n'est pas résolue.
        """
        commune = self.resolver.resolve(city_name)
        if commune is None:
            logger.info("Commune introuvable : '%s'", city_name)
            return None
        values = self.collect(commune)
        return MetricsRecord(commune=commune, **values)

    def collect(self, commune: Commune) -> Dict[str, Any]:
        """Interroge toutes les sources et fusionne leurs contributions."""
        values = {name: default_value(name) for name in METRIC_FIELDS}
        if not self.adapters:
            return values

        workers = max(1, min(self.config.network.max_workers, len(self.adapters)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(a.run, commune): a for a in self.adapters}
            for future in as_completed(futures):
                adapter = futures[future]
                contribution = future.result()
                for name, value in contribution.items():
                    if name in values:
                        values[name] = value
                    else:
                        logger.warning(
                            "Champ '%s' de la source '%s' ignoré (inconnu)",
                            name, adapter.source_name,
                        )

        logger.info(
            "Métriques %s : %d sources, %d champs renseignés",
            commune.name, len(self.adapters),
            sum(1 for v in values.values() if v is not None),
        )
        return values

    def compare(self, city_a: str, city_b: str) -> CompareResult:
        """Construit les deux MetricsRecord en parallèle."""
        with ThreadPoolExecutor(max_workers=2) as pool:
            first = pool.submit(self.build_metrics, city_a)
            second = pool.submit(self.build_metrics, city_b)
            return CompareResult(first=first.result(), second=second.result())


# =============================================================================
# Instance par défaut (paresseuse)
# =============================================================================

_default_aggregator: Optional[MetricsAggregator] = None
_default_lock = threading.Lock()


def get_aggregator() -> MetricsAggregator:
    """Agrégateur partagé du processus (construit au premier appel)."""
    global _default_aggregator
    with _default_lock:
        if _default_aggregator is None:
            _default_aggregator = MetricsAggregator()
        return _default_aggregator
