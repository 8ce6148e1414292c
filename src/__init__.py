# -*- coding: utf-8 -*-
"""
Île-de-France Commune Eco-Metrics — Source Package
==================================================

Comparateur d'indicateurs écologiques des communes d'Île-de-France.

Modules:
    commune     — Résolution texte libre → commune de la région (API Géo)
    http_utils  — Session HTTP partagée et lecture JSON tolérante
    adapters    — Sources de métriques (événements, énergie, synthétiques)
    metrics     — Agrégation parallèle des sources en MetricsRecord
    pipeline    — Point d'entrée CLI
"""
