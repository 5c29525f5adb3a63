#!/usr/bin/env python3
"""CLI script to refresh stored custom-field snapshots for a CRM location.

Usage:
    uv run python scripts/sync_fields.py --location-id ve9EPM428h8vShlRW1KT
    uv run python scripts/sync_fields.py --location-id ve9EPM428h8vShlRW1KT --recreate-missing

Connects directly to the database using DATABASE_URL from environment or .env file.
Loads the active configuration for the location, reconciles its extraction
fields with the live CRM schema and reports renamed and missing fields.
With --recreate-missing, every missing field that still has a usable
snapshot is recreated.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

# Ensure project root is on sys.path so we can import src.app
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dotenv import load_dotenv  # noqa: E402

# Load .env from project root
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))


async def sync(location_id: str, recreate_missing: bool) -> int:
    """Run a sync (and optional recreation) for one location. Returns exit code."""
    from src.app.api.deps import build_crm_client_factory
    from src.app.api.middleware.logging import configure_structlog
    from src.app.config import get_settings
    from src.app.core.database import close_db, get_session
    from src.app.extraction.errors import ExtractionError
    from src.app.extraction.field_sync import FieldSyncService
    from src.app.extraction.recreation import FieldRecreationService
    from src.app.extraction.repository import ExtractionRepository

    configure_structlog()
    settings = get_settings()
    repository = ExtractionRepository(session_factory=get_session)
    client_factory = build_crm_client_factory(settings)

    try:
        configuration = await repository.get_active_configuration_by_location(location_id)
        if configuration is None:
            print(f"No active configuration for location {location_id}")
            return 1

        service = FieldSyncService(repository=repository, client_factory=client_factory)
        try:
            result = await service.refresh_configuration(configuration)
        except ExtractionError as exc:
            print(f"Sync failed: {exc.message}")
            return 1

        print(f"Synced location {location_id}:")
        print(f"  Refreshed: {len(result.updated)}")
        for update in result.renamed:
            print(f"  Renamed:   {update.previous_name!r} -> {update.new_name!r}")
        print(f"  Missing:   {len(result.missing)}")

        if not recreate_missing or not result.missing:
            return 0

        recreation = FieldRecreationService(repository=repository, client_factory=client_factory)
        failures = 0
        for field_id in result.missing:
            try:
                restored = await recreation.restore_field(configuration, field_id)
            except ExtractionError as exc:
                failures += 1
                print(f"  Could not recreate {field_id}: {exc.message}")
                continue
            print(
                f"  Recreated {field_id}: "
                f"{restored.previous_target_key} -> {restored.new_target_key}"
            )
        return 1 if failures else 0
    finally:
        await close_db()


def main() -> None:
    parser = argparse.ArgumentParser(description="Sync CRM custom-field snapshots")
    parser.add_argument("--location-id", required=True, help="CRM location id")
    parser.add_argument(
        "--recreate-missing",
        action="store_true",
        help="Recreate fields that no longer exist in the CRM",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(sync(args.location_id, args.recreate_missing)))


if __name__ == "__main__":
    main()
