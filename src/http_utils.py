# -*- coding: utf-8 -*-
"""
Client HTTP partagé — session requests et lecture JSON tolérante.
=================================================================

Toutes les sources externes (API Géo, portails Opendatasoft) sont lues
via `HttpClientMixin.fetch_json()`, qui ne lève JAMAIS d'exception :
un code HTTP d'erreur, une erreur réseau ou un corps non-JSON renvoient
`None` après un log explicite. C'est la frontière « SourceUnavailable »
du pipeline.

Préfixes de log :
    [API ERROR]     — code HTTP hors 2xx
    [API NOT JSON]  — réponse 2xx dont le corps n'est pas du JSON
    [FETCH FAILED]  — erreur réseau (timeout, DNS, TLS...)
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config.settings import NetworkConfig

# Longueur max d'un extrait de corps de réponse dans les logs
_SNIPPET_LENGTH = 160


def build_session(network: NetworkConfig) -> requests.Session:
    """Crée une session requests avec la politique de retry configurée.

    Avec `max_retries=0` (défaut), chaque requête est tentée une seule fois.

    Args:
        network: Configuration réseau (retries, backoff).

    Returns:
        Session requests réutilisable.
    """
    session = requests.Session()
    retry_strategy = Retry(
        total=network.max_retries,
        backoff_factor=network.retry_backoff_factor,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"Accept": "application/json"})
    return session


class HttpClientMixin:
    """Session HTTP paresseuse + `fetch_json()` sans exception.

    Les classes utilisatrices doivent définir `self.network`
    (NetworkConfig) et `self.logger` avant le premier appel.
    """

    network: NetworkConfig
    logger: logging.Logger
    _session: Optional[requests.Session] = None

    @property
    def session(self) -> requests.Session:
        """Session HTTP (lazy-initialisée)."""
        if self._session is None:
            self._session = build_session(self.network)
        return self._session

    def fetch_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        quiet_statuses: Iterable[int] = (),
    ) -> Optional[Any]:
        """GET HTTP → JSON, ou None en cas d'échec.

        Args:
            url: URL de l'endpoint.
            params: Paramètres de query string (optionnel).
            quiet_statuses: Codes HTTP attendus (accès refusé, jeu retiré)
                            loggés en DEBUG plutôt qu'en WARNING.

        Returns:
            Objet Python parsé depuis le JSON, ou None.
        """
        self.logger.debug("GET %s | params=%s", url, params)
        try:
            response = self.session.get(
                url, params=params, timeout=self.network.request_timeout
            )
        except requests.RequestException as exc:
            self.logger.warning("[FETCH FAILED] %s : %s", url, exc)
            return None

        if not response.ok:
            level = (
                logging.DEBUG
                if response.status_code in tuple(quiet_statuses)
                else logging.WARNING
            )
            self.logger.log(
                level, "[API ERROR] %s %s %s",
                response.status_code, url, response.text[:_SNIPPET_LENGTH],
            )
            return None

        try:
            return response.json()
        except ValueError:
            self.logger.warning(
                "[API NOT JSON] %s %s", url, response.text[:_SNIPPET_LENGTH]
            )
            return None


def pick_number(value: Any) -> Optional[float]:
    """Convertit une valeur JSON en nombre fini, sinon None.

    >>> pick_number("12.5")
    12.5
    >>> pick_number("n/a") is None
    True
    """
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None
