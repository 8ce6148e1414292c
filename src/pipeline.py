# -*- coding: utf-8 -*-
"""
Pipeline Orchestrator — Entry point for running the project.
==============================================================

Commands of the commune eco-metrics comparator:
    1. list     — List registered source adapters
    2. resolve  — Resolve a free-text city name to an Île-de-France commune
    3. metrics  — Build the metrics record of one city
    4. compare  — Build and compare the metrics of two cities
    5. events   — List geolocated events of a map category

CLI usage:
    python -m src.pipeline list
    python -m src.pipeline resolve "Saint-Denis"
    python -m src.pipeline metrics Versailles
    python -m src.pipeline compare Paris Créteil
    python -m src.pipeline events --category nature --limit 20

Exit status is 1 when a requested city cannot be resolved.

Extensibility:
    To add a new command:
    1. Write a run_<command>() function returning an exit status
    2. Register it in COMMANDS and in main() below
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from src.adapters import EVENT_CATEGORIES, AdapterRegistry, EventFeed, events_to_frame
from src.commune import CommuneResolver, ResolutionStatus
from src.metrics import METRIC_FIELDS, MetricsRecord, get_aggregator

console = Console()

COMMANDS = ["list", "resolve", "metrics", "compare", "events"]

# Libellés affichés pour chaque champ du MetricsRecord
FIELD_LABELS = {
    "nature_events_count": "Animations nature",
    "public_events_count": "Événements publics",
    "public_eco_events_count": "Événements publics éco",
    "elec_kwh_per_hab": "Électricité (kWh/hab/an)",
    "gas_kwh_per_hab": "Gaz (kWh/hab/an)",
    "water_l_per_hab": "Eau (L/hab/an)",
    "waste_kg_per_hab": "Déchets (kg/hab/an)",
    "fuel_l_per_hab": "Carburant (L/hab/an)",
    "ges_emissions_tons_per_hab": "Émissions GES (tCO2eq/hab)",
    "water_consum_l_per_hab": "Eau domestique (L/hab/jour)",
    "air_quality_index": "Qualité de l'air (indice)",
    "renewable_energy_pct": "Énergies renouvelables (%)",
}


# Indicateur d'estimation associé à chaque valeur
ESTIMATE_FLAGS = {
    "elec_kwh_per_hab": "elec_estimated",
    "gas_kwh_per_hab": "gas_estimated",
    "water_l_per_hab": "water_estimated",
    "waste_kg_per_hab": "waste_estimated",
    "fuel_l_per_hab": "fuel_estimated",
}


def setup_logging(level: str = "INFO") -> None:
    """Configure global logging for the pipeline.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(name)-25s | %(levelname)-8s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def format_value(record: MetricsRecord, name: str) -> str:
    """Rendu d'une valeur, suffixée '(estimé)' quand son indicateur est levé."""
    value = getattr(record, name)
    if value is None:
        return "[dim]n/d[/dim]"
    if isinstance(value, float) and name != "ges_emissions_tons_per_hab":
        text = f"{value:,.0f}"
    else:
        text = str(value)
    flag = ESTIMATE_FLAGS.get(name)
    if flag and getattr(record, flag):
        text += " [yellow](estimé)[/yellow]"
    return text


def _metric_names() -> List[str]:
    return [name for name in METRIC_FIELDS if not name.endswith("_estimated")]


def run_list() -> int:
    """List registered source adapters."""
    table = Table(title="Sources de métriques", box=box.ROUNDED, border_style="blue")
    table.add_column("Source", style="bold cyan")
    table.add_column("Classe")
    table.add_column("Champs")
    for name in AdapterRegistry.available():
        adapter_class = AdapterRegistry.get(name)
        table.add_row(name, adapter_class.__name__, ", ".join(adapter_class.fields))
    console.print(table)
    return 0


def run_resolve(city: str) -> int:
    """Resolve a city name and print the commune, or why it failed."""
    outcome = CommuneResolver().lookup(city)
    if outcome.status is ResolutionStatus.UNAVAILABLE:
        console.print(f"[bold red]Registre des communes indisponible[/bold red] ('{city}')")
        return 1
    if outcome.commune is None:
        console.print(f"[bold red]Commune introuvable en Île-de-France :[/bold red] '{city}'")
        return 1

    commune = outcome.commune
    table = Table(title=f"Commune « {outcome.query} »", box=box.ROUNDED, show_header=False)
    table.add_column("Champ", style="bold white")
    table.add_column("Valeur")
    table.add_row("Nom", commune.name)
    table.add_row("Département", f"{commune.department_name} ({commune.department_code})")
    table.add_row("Code INSEE", commune.insee_code)
    table.add_row("Population", f"{commune.population:,}" if commune.population else "n/d")
    console.print(table)
    return 0


def run_metrics(city: str) -> int:
    """Build and print the metrics record of one city."""
    record = get_aggregator().build_metrics(city)
    if record is None:
        console.print(f"[bold red]Commune introuvable :[/bold red] '{city}'")
        return 1

    commune = record.commune
    table = Table(
        title=f"{commune.name} — {commune.department_name}",
        box=box.ROUNDED,
        show_lines=True,
        border_style="green",
    )
    table.add_column("Indicateur", style="bold white", min_width=28)
    table.add_column("Valeur", justify="right", min_width=14)
    for name in _metric_names():
        table.add_row(FIELD_LABELS.get(name, name), format_value(record, name))
    console.print(table)
    return 0


def run_compare(city_a: str, city_b: str) -> int:
    """Build both metrics records concurrently and print them side by side."""
    result = get_aggregator().compare(city_a, city_b)
    missing = [c for c, r in ((city_a, result.first), (city_b, result.second)) if r is None]
    if missing:
        for city in missing:
            console.print(f"[bold red]Commune introuvable :[/bold red] '{city}'")
        return 1

    first, second = result.first, result.second
    table = Table(title="Comparaison", box=box.ROUNDED, show_lines=True, border_style="blue")
    table.add_column("Indicateur", style="bold white", min_width=28)
    table.add_column(first.commune.name, justify="right")
    table.add_column(second.commune.name, justify="right")
    for name in _metric_names():
        table.add_row(
            FIELD_LABELS.get(name, name),
            format_value(first, name),
            format_value(second, name),
        )
    console.print(table)
    return 0


def run_events(category: Optional[str] = None, limit: Optional[int] = None) -> int:
    """Print geolocated events of one category (all categories by default)."""
    feed = EventFeed()
    points = feed.list_events(category, limit) if category else feed.list_all(limit)
    frame = events_to_frame(points)

    table = Table(
        title=f"Événements ({category or 'toutes catégories'}) — {len(frame)} points",
        box=box.ROUNDED,
    )
    for column in ("category", "title", "city", "start", "latitude", "longitude"):
        table.add_column(column)
    for row in frame.itertuples(index=False):
        table.add_row(
            row.category, row.title, row.city, row.start,
            f"{row.latitude:.5f}", f"{row.longitude:.5f}",
        )
    console.print(table)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the pipeline."""
    parser = argparse.ArgumentParser(
        description="Éco-comparateur de communes d'Île-de-France",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m src.pipeline list                        # List source adapters
  python -m src.pipeline resolve "Saint-Denis"       # Resolve a commune
  python -m src.pipeline metrics Versailles          # Metrics of one city
  python -m src.pipeline compare Paris Créteil       # Compare two cities
  python -m src.pipeline events --category nature    # Map events
        """,
    )

    parser.add_argument("command", choices=COMMANDS, help="Command to execute")
    parser.add_argument("cities", nargs="*", help="City name(s)")
    parser.add_argument(
        "--category",
        type=str,
        default=None,
        choices=list(EVENT_CATEGORIES),
        help="Event category (events command, default: all)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Max records per event category",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    expected = {"resolve": 1, "metrics": 1, "compare": 2}.get(args.command, 0)
    if len(args.cities) != expected:
        parser.error(f"'{args.command}' expects {expected} city name(s)")

    if args.command == "list":
        return run_list()
    if args.command == "resolve":
        return run_resolve(args.cities[0])
    if args.command == "metrics":
        return run_metrics(args.cities[0])
    if args.command == "compare":
        return run_compare(args.cities[0], args.cities[1])
    return run_events(args.category, args.limit)


if __name__ == "__main__":
    sys.exit(main())
