# -*- coding: utf-8 -*-
"""
BaseAdapter & AdapterRegistry — Fondation des sources de métriques.
===================================================================

Ce module définit l'architecture extensible des adaptateurs de sources.
Deux composants principaux :

1. **BaseAdapter** (classe abstraite) :
   Fournit le squelette commun à tous les adaptateurs : session HTTP,
   lecture JSON tolérante, logging structuré, et surtout la frontière
   d'erreur `run()` : un adaptateur ne propage JAMAIS d'exception vers
   l'agrégateur. En cas d'échec, il contribue `empty_result()`
   (valeurs None, indicateurs d'estimation à False).

2. **AdapterRegistry** (système de plugins) :
   Enregistre automatiquement chaque sous-classe concrète de BaseAdapter
   grâce au hook `__init_subclass__`. L'agrégateur instancie tous les
   adaptateurs enregistrés sans configuration manuelle.

Architecture :
    BaseAdapter (ABC)
    ├── fields         → Champs du MetricsRecord produits (à définir)
    ├── fetch()        → Calcule les champs pour une commune (à implémenter)
    ├── run()          → fetch() protégé : jamais d'exception
    ├── empty_result() → Contribution par défaut en cas d'échec
    └── fetch_json()   → GET HTTP → JSON ou None (HttpClientMixin)

Extensibilité :
    Pour ajouter une nouvelle source de métriques :
    1. Créer un module dans src/adapters/
    2. Définir une classe héritant de BaseAdapter avec source_name et fields
    3. Implémenter fetch()
    4. Importer le module dans src/adapters/__init__.py

    Exemple minimal :
        class NoiseAdapter(BaseAdapter):
            source_name = "noise"
            fields = ("noise_db",)

            def fetch(self, commune: Commune) -> Dict[str, Any]:
                data = self.fetch_json("https://api.example.com/noise")
                return {"noise_db": pick_number(data.get("db")) if data else None}
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type

from config.settings import ProjectConfig
from src.commune import Commune
from src.http_utils import HttpClientMixin

# URL de l'API Explore v2.1 d'un portail Opendatasoft
ODS_RECORDS_URL = "https://{domain}/api/explore/v2.1/catalog/datasets/{dataset}/records"


def ods_records_url(domain: str, dataset: str) -> str:
    """URL des enregistrements d'un jeu de données Opendatasoft."""
    return ODS_RECORDS_URL.format(domain=domain, dataset=dataset)


def ods_escape(text: str) -> str:
    """Échappe les guillemets d'un terme passé à `search("...")` (ODSQL)."""
    return text.replace('"', '\\"')


# =============================================================================
# Classe abstraite BaseAdapter
# =============================================================================

class BaseAdapter(HttpClientMixin, ABC):
    """Classe abstraite de base pour toutes les sources de métriques.

    Fournit :
    - Session HTTP et `fetch_json()` sans exception
    - Logging structuré 'adapters.<source_name>'
    - Frontière d'erreur `run()` : valeur ou None, jamais d'exception
    - Auto-enregistrement dans l'AdapterRegistry

    Sous-classes DOIVENT définir :
        - `source_name` (ClassVar[str]) : identifiant unique de la source
        - `fields` (ClassVar[tuple]) : champs du MetricsRecord produits
        - `fetch(commune)` : calcul des champs

    Les champs dont le nom finit par '_estimated' sont des booléens
    (False par défaut), les autres des valeurs numériques optionnelles.
    """

    source_name: ClassVar[str]
    fields: ClassVar[Tuple[str, ...]] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        """Enregistre automatiquement chaque sous-classe concrète."""
        super().__init_subclass__(**kwargs)
        if "source_name" in cls.__dict__ and not getattr(cls, "__abstractmethods__", None):
            AdapterRegistry._register(cls)

    def __init__(self, config: Optional[ProjectConfig] = None) -> None:
        """Initialise l'adaptateur avec sa configuration.

        Args:
            config: Configuration projet. Défaut : `config.settings.config`.
        """
        if config is None:
            from config.settings import config as project_config
            config = project_config
        self.config = config
        self.network = config.network
        self.logger = logging.getLogger(f"adapters.{self.source_name}")
        self._setup_logging()

    # --- Point d'entrée protégé -------------------------------------------

    def run(self, commune: Commune) -> Dict[str, Any]:
        """Exécute `fetch()` sans jamais laisser passer d'exception.

        Le résultat est restreint aux champs déclarés ; un champ absent
        prend sa valeur par défaut.

        Args:
            commune: Commune résolue.

        Returns:
            Dictionnaire {champ: valeur} couvrant exactement `fields`.
        """
        try:
            values = self.fetch(commune)
            if not isinstance(values, dict):
                raise TypeError(
                    f"fetch() doit retourner un dict, reçu {type(values).__name__}"
                )
            result = self.empty_result()
            for name in self.fields:
                if name in values:
                    result[name] = values[name]
        except Exception as exc:
            self.logger.exception(
                "✗ Échec de la source '%s' pour %s : %s",
                self.source_name, commune.name, exc,
            )
            return self.empty_result()
        return result

    def empty_result(self) -> Dict[str, Any]:
        """Contribution d'une source en échec : None / False."""
        return {
            name: (False if name.endswith("_estimated") else None)
            for name in self.fields
        }

    # --- Méthode abstraite ------------------------------------------------

    @abstractmethod
    def fetch(self, commune: Commune) -> Dict[str, Any]:
        """Calcule les champs de la source pour une commune.

        Args:
            commune: Commune résolue (nom, code INSEE, population).

        Returns:
            Dictionnaire {champ: valeur}, valeurs normalisées.
        """
        ...

    # --- Méthodes privées -------------------------------------------------

    def _setup_logging(self) -> None:
        """Configure le logger de l'adaptateur.

        Format : YYYY-MM-DD HH:MM:SS | adapters.source_name | LEVEL | message
        """
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        self.logger.setLevel(level)
        # Éviter les handlers dupliqués si le module est rechargé
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                "%(asctime)s | %(name)-25s | %(levelname)-8s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
            self.logger.propagate = False


# =============================================================================
# Registry des adaptateurs (système de plugins)
# =============================================================================

class AdapterRegistry:
    """Registre central de tous les adaptateurs disponibles.

    Les adaptateurs sont enregistrés automatiquement via le hook
    `__init_subclass__` de BaseAdapter. Il suffit d'importer le module
    contenant un adaptateur pour qu'il soit disponible.

    Usage:
        >>> import src.adapters
        >>> AdapterRegistry.available()[:3]
        ['air_quality', 'energy', 'ges_emissions']
        >>> adapters = AdapterRegistry.create_all(config)
    """

    _adapters: ClassVar[Dict[str, Type[BaseAdapter]]] = {}

    @classmethod
    def _register(cls, adapter_class: Type[BaseAdapter]) -> None:
        """Enregistre une classe d'adaptateur (appelé automatiquement)."""
        name = adapter_class.source_name
        if name in cls._adapters and cls._adapters[name] is not adapter_class:
            logging.getLogger("adapters.registry").warning(
                "Écrasement de l'adaptateur existant '%s' par %s",
                name, adapter_class.__name__,
            )
        cls._adapters[name] = adapter_class
        logging.getLogger("adapters.registry").debug(
            "Adaptateur '%s' enregistré (%s)", name, adapter_class.__name__
        )

    @classmethod
    def available(cls) -> List[str]:
        """Liste triée des source_name enregistrés."""
        return sorted(cls._adapters.keys())

    @classmethod
    def get(cls, name: str) -> Type[BaseAdapter]:
        """Récupère une classe d'adaptateur par son nom.

        Raises:
            KeyError: Si aucun adaptateur n'est enregistré avec ce nom.
        """
        if name not in cls._adapters:
            raise KeyError(
                f"Adaptateur inconnu : '{name}'. "
                f"Disponibles : {cls.available()}"
            )
        return cls._adapters[name]

    @classmethod
    def create_all(
        cls,
        config: Optional[ProjectConfig] = None,
        names: Optional[List[str]] = None,
    ) -> List[BaseAdapter]:
        """Instancie les adaptateurs demandés (tous par défaut)."""
        return [cls.get(name)(config) for name in (names or cls.available())]
