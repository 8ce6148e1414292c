"""
Dependances partagees pour l'API de l'eco-comparateur.

Construit l'agregateur, le resolveur de communes et le flux d'evenements
une seule fois au demarrage, et les expose via un singleton AppState
accessible par tous les endpoints.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional

from config.settings import ProjectConfig
from src.adapters import EventFeed
from src.commune import CommuneResolver
from src.metrics import MetricsAggregator, get_aggregator

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

API_VERSION: str = "1.0.0"

# Longueur minimale d'un nom de ville saisi (apres suppression des espaces)
MIN_CITY_LENGTH: int = 2


# ---------------------------------------------------------------------------
# Etat global de l'application (singleton)
# ---------------------------------------------------------------------------

@dataclass
class AppState:
    """Etat global construit une seule fois au demarrage de l'API."""

    aggregator: Optional[MetricsAggregator] = None
    resolver: Optional[CommuneResolver] = None
    event_feed: Optional[EventFeed] = None
    start_time: float = field(default_factory=time.time)

    # -- chargement ---------------------------------------------------------

    def load(self, config: Optional[ProjectConfig] = None) -> None:
        """Instancie les composants partages.

        L'agregateur par defaut du processus est reutilise : son disjoncteur
        energie est donc commun a toutes les requetes.
        """
        if config is None:
            self.aggregator = get_aggregator()
            config = self.aggregator.config
        else:
            self.aggregator = MetricsAggregator(config)
        self.resolver = self.aggregator.resolver
        self.event_feed = EventFeed(config)
        self.start_time = time.time()

    @property
    def ready(self) -> bool:
        return self.aggregator is not None

    @property
    def config(self) -> Optional[ProjectConfig]:
        return self.aggregator.config if self.aggregator is not None else None


# Instance globale
state = AppState()
