# -*- coding: utf-8 -*-
"""
Source Adapters Package
=======================

Adaptateurs de sources pour l'éco-comparateur de communes.
Chaque source de métriques a sa propre classe héritant de BaseAdapter.

Architecture extensible :
    Pour ajouter une nouvelle source, créer un module dans ce package
    avec une classe héritant de BaseAdapter, puis l'importer ici.
    Elle sera automatiquement enregistrée dans l'AdapterRegistry.

Exemple:
    >>> from src.adapters import AdapterRegistry
    >>> adapters = AdapterRegistry.create_all()

Sources disponibles:
    - nature_events          : animations nature IDF (comptage)
    - public_events          : événements publics OpenAgenda (comptage)
    - public_eco_events      : événements publics éco (comptage)
    - energy                 : Agence ORE (élec/gaz par habitant, avec repli)
    - utilities_placeholder  : eau, déchets, carburant (synthétique)
    - ges_emissions          : émissions GES (synthétique)
    - water_consumption      : consommation d'eau (synthétique)
    - air_quality            : qualité de l'air (synthétique)
    - renewable_energy       : part d'EnR (synthétique)
"""

# Importer tous les adaptateurs pour déclencher l'auto-enregistrement
from src.adapters.base import AdapterRegistry, BaseAdapter
from src.adapters.events import (
    EVENT_CATEGORIES,
    EventFeed,
    EventPoint,
    NatureEventsAdapter,
    PublicEcoEventsAdapter,
    PublicEventsAdapter,
    events_to_frame,
)
from src.adapters.energy import CircuitBreaker, EnergyAdapter, resolve_energy_fields
from src.adapters.synthetic import (
    AirQualityAdapter,
    GesEmissionsAdapter,
    RenewableEnergyAdapter,
    SyntheticIndicatorAdapter,
    UtilitiesPlaceholderAdapter,
    WaterConsumptionAdapter,
)

__all__ = [
    "AdapterRegistry",
    "BaseAdapter",
    "EVENT_CATEGORIES",
    "EventFeed",
    "EventPoint",
    "events_to_frame",
    "NatureEventsAdapter",
    "PublicEventsAdapter",
    "PublicEcoEventsAdapter",
    "CircuitBreaker",
    "EnergyAdapter",
    "resolve_energy_fields",
    "SyntheticIndicatorAdapter",
    "UtilitiesPlaceholderAdapter",
    "GesEmissionsAdapter",
    "WaterConsumptionAdapter",
    "AirQualityAdapter",
    "RenewableEnergyAdapter",
]
