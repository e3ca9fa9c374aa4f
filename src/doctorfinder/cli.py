"""
DoctorFinder CLI entrypoint.

Manage the configured doctor store and run proximity searches without the HTTP API.
All logic is delegated to `DirectoryService` and `SearchService`.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from doctorfinder.config.settings import get_settings
from doctorfinder.core.logging import configure_logging
from doctorfinder.directory.importer import FieldMap, import_rows, read_rows
from doctorfinder.directory.service import DirectoryService
from doctorfinder.domain.errors import DoctorFinderError
from doctorfinder.domain.models import KNOWN_SPECIALTIES, DoctorRecord, GeoPoint, SearchQuery, SearchResponse
from doctorfinder.ingestion.geocoder import NominatimGeocoder, build_cache
from doctorfinder.search.service import SEARCH_MODES, SearchService


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _format_record(r: DoctorRecord) -> str:
    return f"{r.id}  {r.name} ({r.specialty})  {r.location.lat:.5f},{r.location.lng:.5f}  {r.phone}"


def _cmd_add(args: argparse.Namespace, directory: DirectoryService) -> int:
    record = directory.create(
        {
            "name": args.name,
            "specialty": args.specialty,
            "phone": args.phone,
            "address": args.address,
            "coordinates": {"lat": args.lat, "lng": args.lng},
        }
    )
    if args.json:
        _print_json(record.model_dump(mode="json"))
    else:
        print(f"Created {_format_record(record)}")
    return 0


def _cmd_list(args: argparse.Namespace, directory: DirectoryService) -> int:
    records = directory.list()
    if args.json:
        _print_json([r.model_dump(mode="json") for r in records])
        return 0
    for r in records:
        print(_format_record(r))
    print(f"{len(records)} doctor(s)")
    return 0


def _cmd_delete(args: argparse.Namespace, directory: DirectoryService) -> int:
    if directory.delete(args.id):
        print(f"Deleted {args.id}")
        return 0
    print(f"Doctor not found: {args.id}", file=sys.stderr)
    return 1


def _cmd_search(args: argparse.Namespace, directory: DirectoryService) -> int:
    """Handle the `search` subcommand (coordinates, or a place label to geocode)."""
    settings = get_settings()
    service = SearchService(
        directory.index,
        settings=settings.search,
        geocoder=NominatimGeocoder(settings, build_cache(settings)),
    )

    response: SearchResponse
    if args.lat is not None or args.lng is not None:
        query = SearchQuery(
            origin=GeoPoint.of(args.lat, args.lng),
            radius_km=args.radius,
            location_label=args.location,
            specialty=args.specialty,
            limit=args.limit,
        )
        response = service.search(query, args.mode)
    elif args.location:
        response = service.search_text(
            args.location, radius_km=args.radius, mode=args.mode, specialty=args.specialty, limit=args.limit
        )
    else:
        raise SystemExit("search: provide --lat/--lng or --location")

    if args.json:
        _print_json(response.model_dump(mode="json"))
        return 0

    label = response.location_label or f"{response.origin.lat:.5f},{response.origin.lng:.5f}"
    print(f"{response.count} doctor(s) within {response.radius_km:g} km of {label} [{response.mode}]")
    for i, r in enumerate(response.results, start=1):
        print(f"{i:>2}. {r.distance_km:>7.2f} km  {r.name} ({r.specialty})  {r.address}")
    return 0


def _cmd_import(args: argparse.Namespace, directory: DirectoryService) -> int:
    fields = FieldMap(name=args.name_field, specialty=args.specialty_field, lat=args.lat_field, lng=args.lng_field)
    report = import_rows(directory, read_rows(args.path), fields=fields, dedupe_radius_km=args.dedupe_km)
    if args.json:
        _print_json(report.as_dict())
    else:
        print(f"rows={report.rows} added={report.added} duplicates={report.duplicates} bad={report.bad}")
        for line in report.errors:
            print(f"  {line}", file=sys.stderr)
    return 0 if report.bad == 0 else 1


def _cmd_geocode(args: argparse.Namespace, _: DirectoryService | None) -> int:
    settings = get_settings()
    point = NominatimGeocoder(settings, build_cache(settings)).geocode(args.location)
    print(f"{point.lat:.6f},{point.lng:.6f}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the DoctorFinder CLI."""
    parser = argparse.ArgumentParser(prog="doctorfinder")
    parser.add_argument("--log-level", default=None, help="Override DOCTORFINDER_LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Add a doctor to the store.")
    add.add_argument("--name", required=True)
    add.add_argument("--specialty", required=True, help=f"e.g. {', '.join(KNOWN_SPECIALTIES[:3])}")
    add.add_argument("--phone", default="")
    add.add_argument("--address", default="")
    add.add_argument("--lat", required=True, type=float)
    add.add_argument("--lng", required=True, type=float)
    add.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    add.set_defaults(func=_cmd_add)

    ls = sub.add_parser("list", help="List all doctors.")
    ls.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    ls.set_defaults(func=_cmd_list)

    rm = sub.add_parser("delete", help="Delete a doctor by id.")
    rm.add_argument("id")
    rm.set_defaults(func=_cmd_delete)

    s = sub.add_parser("search", help="Find doctors near a point or place.")
    s.add_argument("--lat", type=float, default=None)
    s.add_argument("--lng", type=float, default=None)
    s.add_argument("--location", default=None, help="Place label (geocoded when --lat/--lng are omitted)")
    s.add_argument("--radius", type=float, default=None, help="Radius in km (default from config)")
    s.add_argument("--mode", choices=list(SEARCH_MODES), default=None)
    s.add_argument("--specialty", default=None)
    s.add_argument("--limit", type=int, default=None)
    s.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    s.set_defaults(func=_cmd_search)

    imp = sub.add_parser("import", help="Bulk import doctors from a CSV or JSON file.")
    imp.add_argument("path", help="Path to .csv (header row) or .json (array of objects)")
    imp.add_argument("--name-field", default="name")
    imp.add_argument("--specialty-field", default="specialty")
    imp.add_argument("--lat-field", default="lat")
    imp.add_argument("--lng-field", default="lng")
    imp.add_argument("--dedupe-km", type=float, default=0.05, help="Skip same-name rows this close (0 disables)")
    imp.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    imp.set_defaults(func=_cmd_import)

    g = sub.add_parser("geocode", help="Resolve a place label to lat,lng.")
    g.add_argument("location")
    g.set_defaults(func=_cmd_geocode, needs_directory=False)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m doctorfinder.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    func: Any = getattr(args, "func")
    try:
        directory = DirectoryService.from_settings(get_settings()) if getattr(args, "needs_directory", True) else None
        return int(func(args, directory))
    except (DoctorFinderError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
