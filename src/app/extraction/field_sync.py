"""Remote custom-field synchronization.

Reconciles stored field snapshots against the live custom-field definitions
of a CRM location:
- field still exists: the live definition replaces the stored snapshot and
  a remote rename is propagated to the config's display name
- field is gone: the stored snapshot is left untouched, since it is the only
  record of the field's shape and the input for recreation

Nothing is ever deleted here.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

import structlog

from src.app.extraction.concurrency import gather_or_cancel
from src.app.extraction.crm.adapter import CRMClient
from src.app.extraction.repository import ExtractionRepository
from src.app.extraction.schemas import (
    CRMConfiguration,
    ExtractionFieldConfig,
    FieldSnapshotUpdate,
    FieldSyncResult,
    RemoteFieldSnapshot,
)
from src.app.extraction.standard_fields import FieldClass

logger = structlog.get_logger(__name__)

DEFAULT_MODEL = "contact"


def refresh_snapshot(live: RemoteFieldSnapshot) -> RemoteFieldSnapshot:
    """Snapshot of a live field definition with placement keys made explicit.

    ``parentId``, ``objectId`` and ``objectSchemaId`` are always present (None
    when unset), ``position`` defaults to 0 and ``model`` to ``contact``.
    Every other key of the live definition, options included, is kept.
    """
    data = live.model_dump()
    data.update(
        parentId=live.parentId or None,
        position=live.position or 0,
        fieldKey=live.fieldKey,
        model=live.model or DEFAULT_MODEL,
        objectId=live.objectId or None,
        objectSchemaId=live.objectSchemaId or None,
    )
    return RemoteFieldSnapshot.model_validate(data)


class FieldSyncService:
    """Keeps stored remote field snapshots in step with the CRM.

    Args:
        repository: Extraction field persistence.
        client_factory: Builds a CRMClient for a stored configuration.
    """

    def __init__(
        self,
        repository: ExtractionRepository,
        client_factory: Callable[[CRMConfiguration], CRMClient],
    ) -> None:
        self._repository = repository
        self._client_factory = client_factory

    @staticmethod
    def sync(
        local_configs: Iterable[ExtractionFieldConfig],
        remote_fields: Iterable[RemoteFieldSnapshot],
    ) -> FieldSyncResult:
        """Compute snapshot refreshes and renames for custom-class configs.

        Pure: nothing is persisted. Standard-class configs are ignored.

        Args:
            local_configs: Stored extraction field configs.
            remote_fields: Live custom-field definitions for the same location.

        Returns:
            FieldSyncResult with one update per config whose field still exists
            and the ids of configs whose field has disappeared.
        """
        remote_by_id = {f.id: f for f in remote_fields if f.id}
        result = FieldSyncResult()

        for config in local_configs:
            if config.field_class != FieldClass.CUSTOM:
                continue

            live = remote_by_id.get(config.target_key)
            if live is None:
                logger.info(
                    "field_sync.remote_missing",
                    field_id=config.id,
                    target_key=config.target_key,
                    has_snapshot=config.original_remote_snapshot is not None,
                )
                result.missing.append(config.id)
                continue

            new_name = None
            if live.name and live.name != config.field_name:
                new_name = live.name
                logger.info(
                    "field_sync.renamed",
                    field_id=config.id,
                    previous_name=config.field_name,
                    new_name=new_name,
                )

            result.updated.append(
                FieldSnapshotUpdate(
                    field_id=config.id,
                    snapshot=refresh_snapshot(live),
                    previous_name=config.field_name,
                    new_name=new_name,
                )
            )

        return result

    async def refresh_configuration(self, configuration: CRMConfiguration) -> FieldSyncResult:
        """Fetch the live schema, reconcile it and persist refreshed snapshots.

        The remote field listing and the stored configs are loaded
        concurrently. A failed remote read raises UpstreamError and nothing
        is written.
        """
        client = self._client_factory(configuration)
        remote_fields, local_configs = await gather_or_cancel(
            client.list_custom_fields(configuration.location_id),
            self._repository.list_fields(configuration.id),
        )

        result = self.sync(local_configs, remote_fields)

        for update in result.updated:
            await self._repository.update_snapshot(
                configuration.id,
                update.field_id,
                update.snapshot,
                field_name=update.new_name,
            )

        logger.info(
            "field_sync.complete",
            config_id=configuration.id,
            location_id=configuration.location_id,
            refreshed=len(result.updated),
            renamed=len(result.renamed),
            missing=len(result.missing),
        )
        return result

