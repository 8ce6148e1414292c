# -*- coding: utf-8 -*-
"""
Sources « événements » — portail open data Île-de-France (Opendatasoft).
========================================================================

Deux usages des mêmes jeux de données :

1. **Compteurs** (adaptateurs du comparateur) : nombre d'enregistrements
   dont le texte mentionne la commune, via une requête
   `select=count(*) as c` de l'API Explore v2.1.
       - nature_events      : ile-de-france-nature-animations
       - public_events      : evenements-publics-cibul
       - public_eco_events  : evenements-publics-cibul ET un terme éco

2. **Points de carte** (`EventFeed`) : liste des événements géolocalisés
   par catégorie (nature, public, public_eco, eco_other). Les schémas
   varient d'un jeu à l'autre : les coordonnées sont cherchées dans
   `geo`, `location_coordinates`, `latitude/longitude` puis `lat/lon`.

Source : https://data.iledefrance.fr/api/explore/v2.1/console
Authentification : Aucune (Open Data)
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from config.settings import ProjectConfig
from src.adapters.base import BaseAdapter, ods_escape, ods_records_url
from src.commune import Commune
from src.http_utils import HttpClientMixin, pick_number

# Catégories de points affichés sur la carte
EVENT_CATEGORIES: Tuple[str, ...] = ("nature", "public", "public_eco", "eco_other")

_TAG_RE = re.compile(r"<[^>]*>")
_SPACES_RE = re.compile(r"\s+")


def search_clause(term: str) -> str:
    """Clause ODSQL de recherche plein texte sur un terme."""
    return f'search("{ods_escape(term)}")'


def eco_where(terms: Iterable[str]) -> str:
    """Disjonction `search("t1") OR search("t2") ...` des termes éco."""
    return " OR ".join(search_clause(t) for t in terms)


# =============================================================================
# Compteurs d'événements (adaptateurs)
# =============================================================================

class EventCountAdapter(BaseAdapter):
    """Compte les enregistrements d'un jeu mentionnant la commune.

    Sous-classes : définir `dataset_attr` (attribut de SourcesConfig),
    `fields` (un seul champ) et éventuellement surcharger `where()`.
    """

    dataset_attr: ClassVar[str] = "public_dataset"

    def where(self, commune: Commune) -> str:
        return search_clause(commune.name)

    def fetch(self, commune: Commune) -> Dict[str, Any]:
        sources = self.config.sources
        count = self.count_records(
            sources.events_domain,
            getattr(sources, self.dataset_attr),
            self.where(commune),
        )
        self.logger.info("%s : %s → %s", self.source_name, commune.name, count)
        return {self.fields[0]: count}

    def count_records(self, domain: str, dataset: str, where: str) -> Optional[int]:
        """Nombre d'enregistrements correspondant à `where`, ou None."""
        params = {"select": "count(*) as c", "where": where, "limit": 1}
        data = self.fetch_json(ods_records_url(domain, dataset), params=params)
        if not isinstance(data, dict):
            return None
        results = data.get("results") or []
        if not results or not isinstance(results[0], dict):
            return None
        count = pick_number(results[0].get("c"))
        return int(count) if count is not None else None


class NatureEventsAdapter(EventCountAdapter):
    """Animations nature de la région mentionnant la commune."""

    source_name: ClassVar[str] = "nature_events"
    fields: ClassVar[Tuple[str, ...]] = ("nature_events_count",)
    dataset_attr: ClassVar[str] = "nature_dataset"


class PublicEventsAdapter(EventCountAdapter):
    """Événements publics (OpenAgenda) mentionnant la commune."""

    source_name: ClassVar[str] = "public_events"
    fields: ClassVar[Tuple[str, ...]] = ("public_events_count",)


class PublicEcoEventsAdapter(EventCountAdapter):
    """Événements publics de la commune mentionnant au moins un terme éco."""

    source_name: ClassVar[str] = "public_eco_events"
    fields: ClassVar[Tuple[str, ...]] = ("public_eco_events_count",)

    def where(self, commune: Commune) -> str:
        terms = eco_where(self.config.sources.eco_terms)
        return f"{search_clause(commune.name)} AND ({terms})"


# =============================================================================
# Points de carte
# =============================================================================

@dataclass(frozen=True)
class EventPoint:
    """Événement géolocalisé affiché sur la carte.

    Attributes:
        id: Identifiant de l'enregistrement (ou '<catégorie>-<rang>').
        title: Titre de l'événement.
        latitude / longitude: Coordonnées WGS84.
        category: 'nature', 'public', 'public_eco' ou 'eco_other'.
        subtitle: Sous-titre de la fiche.
        infos: Lignes (libellé, valeur) de la fiche, dans l'ordre d'affichage.
    """
    id: str
    title: str
    latitude: float
    longitude: float
    category: str
    subtitle: str = ""
    infos: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def info(self, label: str) -> Optional[str]:
        for key, value in self.infos:
            if key == label:
                return value
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "category": self.category,
            "subtitle": self.subtitle,
            "infos": [{"label": k, "value": v} for k, v in self.infos],
        }


def strip_html(text: Optional[str]) -> str:
    """Retire les balises HTML et normalise les espaces."""
    if not text:
        return ""
    return _SPACES_RE.sub(" ", _TAG_RE.sub("", str(text))).strip()


def pick_lat_lon(src: Dict[str, Any]) -> Optional[Tuple[float, float]]:
    """Extrait (lat, lon) selon les différents schémas des jeux de données."""
    candidates = []
    for key in ("geo", "location_coordinates"):
        value = src.get(key)
        if isinstance(value, dict):
            candidates.append((value.get("lat"), value.get("lon")))
    candidates.append((src.get("latitude"), src.get("longitude")))
    candidates.append((src.get("lat"), src.get("lon")))

    for raw_lat, raw_lon in candidates:
        # Les valeurs nulles ou à 0 sont ignorées comme dans les jeux sources
        if not raw_lat or not raw_lon:
            continue
        lat, lon = pick_number(raw_lat), pick_number(raw_lon)
        if lat is None or lon is None:
            continue
        # Coordonnées projetées (Lambert-93...) ou inversées : hors WGS84
        if -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0:
            return lat, lon
    return None


def _first(src: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = src.get(key)
        if value:
            return value
    return None


# --- Descriptions de remplacement ------------------------------------------

_PLACEHOLDER_TITLES = (
    "Atelier participatif", "Conférence locale", "Balade écologique",
    "Repair café", "Nettoyage citoyen", "Projection & débat",
    "Forum des initiatives", "Formation compostage",
    "Fête du quartier durable", "Échange de plantes",
)
_PLACEHOLDER_ORGANIZERS = (
    "Collectif Local", "Association Éco-Acteurs", "Les Voisins Solidaires",
    "Ateliers Citoyens", "Réseau Zéro Déchet", "La Maison Verte",
    "Coopérative Locale", "Le Jardin Partagé", "Collectif Mobilité", "Club Vélo",
)
_PLACEHOLDER_PLACES = (
    "Médiathèque municipale", "Parc central", "Maison des associations",
    "Place du marché", "Centre culturel", "Jardin botanique",
    "École primaire du centre", "Mairie annexe", "Maison de quartier",
    "Local associatif",
)
_PLACEHOLDER_WEBSITES = (
    "https://inscription.local/event/", "https://agenda.local/event/",
    "https://www.example.org/event/", "https://evenements.local/",
    "https://reseau-asso.org/inscription/",
)
_PLACEHOLDER_TEMPLATES = (
    "{t} à {c} : séance participative pour échanger des bonnes pratiques. "
    "Atelier, stands et goûter solidaire.",
    "{t}, rencontre et atelier {c}. Des intervenants locaux partageront "
    "leurs retours d'expérience.",
    "{t} : balade & découverte {c}, suivie d'un temps d'échange et "
    "d'actions concrètes.",
    "Participez au {t} {c} pour apprendre, réparer et partager. "
    "Idéal pour les familles.",
    "{t} organisé par {o} : tables-rondes, ateliers pratiques et coin enfant. "
    "Inscription recommandée.",
)


class _SeededRandom:
    """Générateur pseudo-aléatoire déterministe (graine FNV-1a 32 bits)."""

    _MASK = 0xFFFFFFFF
    _PRIME = 16777619

    def __init__(self, seed: str) -> None:
        h = 2166136261
        for byte in seed.encode("utf-8"):
            h = ((h ^ byte) * self._PRIME) & self._MASK
        self._state = h

    def random(self) -> float:
        h = self._state
        self._state = ((h ^ (h >> 13)) * self._PRIME) & self._MASK
        return (self._state % 10000) / 10000

    def choice(self, items: Tuple[str, ...]) -> str:
        return items[int(self.random() * len(items))]


def make_placeholder_details(
    title: Optional[str],
    city: Optional[str],
    seed: str,
    now: Optional[datetime] = None,
) -> Dict[str, str]:
    """Fiche de remplacement d'un événement sans description.

    Le contenu est une fonction pure de `seed` (et de `now` pour les dates).

    Returns:
        Dictionnaire description, start, end, organizer, address, website.
    """
    rnd = _SeededRandom(seed)
    now = now or datetime.now()

    t = title or rnd.choice(_PLACEHOLDER_TITLES)
    c = city or "votre ville"
    organizer = rnd.choice(_PLACEHOLDER_ORGANIZERS)
    place = rnd.choice(_PLACEHOLDER_PLACES)
    website = rnd.choice(_PLACEHOLDER_WEBSITES) + str(int(rnd.random() * 9000 + 1000))

    # Événement dans les 60 prochains jours, durée 2 à 7 h
    start = now + timedelta(days=1 + int(rnd.random() * 60))
    end = start + timedelta(hours=2 + int(rnd.random() * 6))
    template = rnd.choice(_PLACEHOLDER_TEMPLATES)

    description = template.format(t=t, c=c, o=organizer)
    return {
        "description": (
            f"{description}\n\nLieu : {place}, {c}.\n"
            f"Organisateur : {organizer}.\nInscription / infos : {website}"
        ),
        "start": start.strftime("%d/%m/%Y • %H:%M"),
        "end": end.strftime("%d/%m/%Y • %H:%M"),
        "organizer": organizer,
        "address": f"{place}, {c}",
        "website": website,
    }


class EventFeed(HttpClientMixin):
    """Liste les événements géolocalisés pour la carte.

    Usage:
        >>> feed = EventFeed()
        >>> points = feed.list_events("nature", limit=50)
        >>> df = events_to_frame(points)
    """

    _SUBTITLES: ClassVar[Dict[str, str]] = {
        "nature": "Île-de-France Nature",
        "public": "OpenAgenda • Événements publics IDF",
        "public_eco": "OpenAgenda • Événements éco IDF",
        "eco_other": "OpenAgenda • Autres initiatives éco",
    }

    def __init__(
        self,
        config: Optional[ProjectConfig] = None,
        now: Optional[datetime] = None,
    ) -> None:
        if config is None:
            from config.settings import config as project_config
            config = project_config
        self.config = config
        self.network = config.network
        self.logger = logging.getLogger("adapters.event_feed")
        self._now = now

    # --- API publique -----------------------------------------------------

    def list_events(self, category: str, limit: Optional[int] = None) -> List[EventPoint]:
        """Événements géolocalisés d'une catégorie.

        Args:
            category: 'nature', 'public', 'public_eco' ou 'eco_other'.
            limit: Nombre max d'enregistrements demandés.

        Raises:
            ValueError: Si la catégorie est inconnue.
        """
        if category not in EVENT_CATEGORIES:
            raise ValueError(
                f"Catégorie inconnue : '{category}'. "
                f"Valeurs acceptées : {', '.join(EVENT_CATEGORIES)}."
            )
        limit = limit or self.config.sources.events_limit
        sources = self.config.sources

        if category == "nature":
            rows = self._fetch_rows(sources.nature_dataset, limit)
        elif category == "public_eco":
            rows = self._fetch_rows(sources.public_dataset, limit, eco_where(sources.eco_terms))
        else:
            rows = self._fetch_rows(sources.public_dataset, limit)

        points = []
        for rank, row in enumerate(rows):
            point = self._to_point(row, category, rank)
            if point is not None:
                points.append(point)

        self.logger.info(
            "Catégorie '%s' : %d points sur %d enregistrements",
            category, len(points), len(rows),
        )
        return points

    def list_all(self, limit: Optional[int] = None) -> List[EventPoint]:
        """Charge toutes les catégories en parallèle.

        Le résultat reste concaténé dans l'ordre de EVENT_CATEGORIES.
        """
        workers = max(1, min(self.config.network.max_workers, len(EVENT_CATEGORIES)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                category: pool.submit(self.list_events, category, limit)
                for category in EVENT_CATEGORIES
            }
            points: List[EventPoint] = []
            for category in EVENT_CATEGORIES:
                points.extend(futures[category].result())
        return points

    def fetch_event_details(
        self,
        category: str,
        title: Optional[str] = None,
        city: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Champs complets du premier enregistrement correspondant au titre
        ET à la ville, ou None."""
        if not title and not city:
            return None
        dataset = (
            self.config.sources.nature_dataset
            if category == "nature"
            else self.config.sources.public_dataset
        )
        clauses = [search_clause(str(v)) for v in (title, city) if v]
        rows = self._fetch_rows(dataset, 1, " AND ".join(clauses))
        return _record_fields(rows[0]) if rows else None

    # --- Méthodes privées -------------------------------------------------

    def _fetch_rows(self, dataset: str, limit: int, where: Optional[str] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"limit": limit}
        if where:
            params["where"] = where
        url = ods_records_url(self.config.sources.events_domain, dataset)
        data = self.fetch_json(url, params=params)
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            return []
        return [r for r in results if isinstance(r, dict)]

    def _to_point(self, row: Dict[str, Any], category: str, rank: int) -> Optional[EventPoint]:
        src = _record_fields(row)
        coords = pick_lat_lon(src)
        if coords is None:
            return None

        raw_id = row.get("uid") or row.get("id")
        event_id = str(raw_id) if raw_id else f"{category}-{rank}"
        title = str(_first(src, "title", "name") or row.get("title") or _DEFAULT_TITLES[category])
        description = strip_html(_first(src, "description") or row.get("description"))

        if category == "eco_other":
            text = f"{title}\n{description}".lower()
            if not any(k in text for k in self.config.sources.eco_other_keywords):
                return None

        city = _first(src, "location_city", "city", "location_name") or ""
        subtitle = self._SUBTITLES[category]
        if category == "nature":
            infos = self._nature_infos(src, description)
            subtitle = description or subtitle
        else:
            extra: Dict[str, str] = {}
            if not description:
                extra = make_placeholder_details(title, city or None, event_id, self._now)
                description = extra["description"]
            infos = self._public_infos(src, description, city, category, extra)

        return EventPoint(
            id=event_id,
            title=title,
            latitude=coords[0],
            longitude=coords[1],
            category=category,
            subtitle=subtitle,
            infos=tuple(infos),
        )

    @staticmethod
    def _nature_infos(src: Dict[str, Any], description: str) -> List[Tuple[str, str]]:
        location = _first(src, "location_name", "location_city", "city") or "Non spécifié"
        address = _first(src, "location_address", "address") or ""
        return [
            ("Description", description or "—"),
            ("Lieu", f"{location}\n{address}"),
        ]

    @staticmethod
    def _public_infos(
        src: Dict[str, Any],
        description: str,
        city: str,
        category: str,
        extra: Dict[str, str],
    ) -> List[Tuple[str, str]]:
        start = _first(src, "start_date", "start", "date", "start_date_time") or extra.get("start")
        end = _first(src, "end_date", "end") or extra.get("end")
        organizer = _first(src, "organizer", "organiser", "organisation") or extra.get("organizer")
        website = _first(src, "website", "url", "link") or extra.get("website")
        address = _first(src, "location_address", "address") or extra.get("address")

        infos: List[Tuple[str, str]] = [("Description", description)]
        if start:
            infos.append(("Début", str(start)))
        if category == "public":
            if end:
                infos.append(("Fin", str(end)))
            infos.append(("Ville", str(city or "—")))
            infos.append(("Adresse", str(address or "—")))
        elif city:
            infos.append(("Ville", str(city)))
        if organizer and category != "eco_other":
            infos.append(("Organisateur", str(organizer)))
        if website:
            infos.append(("Lien", str(website)))
        return infos


_DEFAULT_TITLES = {
    "nature": "Événement nature",
    "public": "Événement public",
    "public_eco": "Événement éco",
    "eco_other": "Événement",
}


def _record_fields(row: Dict[str, Any]) -> Dict[str, Any]:
    """Champs utiles d'un enregistrement (v2.1 à plat, ou v1 'fields')."""
    record = row.get("record")
    if isinstance(record, dict) and isinstance(record.get("fields"), dict):
        return record["fields"]
    if isinstance(row.get("fields"), dict):
        return row["fields"]
    return row


def events_to_frame(points: Iterable[EventPoint]) -> pd.DataFrame:
    """Vue tabulaire des points (une ligne par événement)."""
    rows = [
        {
            "id": p.id,
            "category": p.category,
            "title": p.title,
            "latitude": p.latitude,
            "longitude": p.longitude,
            "city": p.info("Ville") or "",
            "start": p.info("Début") or "",
        }
        for p in points
    ]
    columns = ["id", "category", "title", "latitude", "longitude", "city", "start"]
    return pd.DataFrame(rows, columns=columns)
