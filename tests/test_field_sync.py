"""Unit tests for FieldSyncService.

Pure reconciliation (found / renamed / missing / standard ignored) and the
async refresh that loads, reconciles and persists via the in-memory
repository and an AsyncMock CRM client.
"""

from __future__ import annotations

import pytest

from src.app.extraction.errors import UpstreamError
from src.app.extraction.field_sync import FieldSyncService, refresh_snapshot
from tests.conftest import make_field, make_snapshot


# ── Snapshot Refresh ─────────────────────────────────────────────────────────


class TestRefreshSnapshot:
    def test_placement_keys_made_explicit(self):
        live = make_snapshot(parentId=None, position=None, model=None)

        snapshot = refresh_snapshot(live)

        dumped = snapshot.model_dump()
        assert dumped["parentId"] is None
        assert "parentId" in dumped
        assert dumped["objectId"] is None
        assert dumped["objectSchemaId"] is None
        assert snapshot.position == 0
        assert snapshot.model == "contact"

    def test_live_values_and_extras_kept(self):
        live = make_snapshot(parentId="folder-9", position=300, options=["A", "B"])

        snapshot = refresh_snapshot(live)

        assert snapshot.parentId == "folder-9"
        assert snapshot.position == 300
        assert snapshot.fieldKey == "contact.budget"
        assert snapshot.get_extra("options") == ["A", "B"]


# ── Pure Sync ────────────────────────────────────────────────────────────────


class TestSync:
    def test_found_field_gets_fresh_snapshot(self):
        config = make_field(
            field_name="Budget",
            target_key="cf_budget",
            original_remote_snapshot=make_snapshot(parentId="folder-1", position=10),
        )
        live = make_snapshot(parentId="folder-2", position=20)

        result = FieldSyncService.sync([config], [live])

        assert len(result.updated) == 1
        update = result.updated[0]
        assert update.field_id == config.id
        assert update.snapshot.parentId == "folder-2"
        assert update.snapshot.position == 20
        assert not update.renamed
        assert result.missing == []

    def test_rename_propagates(self):
        config = make_field(field_name="Budget", target_key="cf_budget")
        live = make_snapshot(name="Project Budget")

        result = FieldSyncService.sync([config], [live])

        assert result.updated[0].new_name == "Project Budget"
        assert result.updated[0].previous_name == "Budget"
        assert [u.field_id for u in result.renamed] == [config.id]

    def test_missing_field_listed_and_snapshot_untouched(self):
        snapshot = make_snapshot(id="cf_gone", name="Gone")
        config = make_field(target_key="cf_gone", original_remote_snapshot=snapshot)

        result = FieldSyncService.sync([config], [make_snapshot(id="cf_other")])

        assert result.updated == []
        assert result.missing == [config.id]
        assert config.original_remote_snapshot == snapshot

    def test_standard_fields_ignored(self):
        config = make_field(target_key="contact.firstName")

        result = FieldSyncService.sync([config], [make_snapshot()])

        assert result.updated == []
        assert result.missing == []


# ── Refresh Configuration ────────────────────────────────────────────────────


class TestRefreshConfiguration:
    async def test_persists_updates(self, repo, configuration, crm_client):
        renamed = repo.add_field(
            make_field(field_name="Budget", target_key="cf_budget", sort_order=1)
        )
        gone_snapshot = make_snapshot(id="cf_gone", name="Gone")
        gone = repo.add_field(
            make_field(
                field_name="Gone",
                target_key="cf_gone",
                original_remote_snapshot=gone_snapshot,
                sort_order=2,
            )
        )
        crm_client.list_custom_fields.return_value = [
            make_snapshot(id="cf_budget", name="Project Budget", parentId="folder-7")
        ]
        service = FieldSyncService(repository=repo, client_factory=lambda _: crm_client)

        result = await service.refresh_configuration(configuration)

        crm_client.list_custom_fields.assert_awaited_once_with(configuration.location_id)
        assert result.missing == [gone.id]

        stored = await repo.get_field(configuration.id, renamed.id)
        assert stored.field_name == "Project Budget"
        assert stored.original_remote_snapshot.parentId == "folder-7"

        stored_gone = await repo.get_field(configuration.id, gone.id)
        assert stored_gone.original_remote_snapshot == gone_snapshot

    async def test_remote_failure_writes_nothing(self, repo, configuration, crm_client):
        field = repo.add_field(make_field(field_name="Budget", target_key="cf_budget"))
        crm_client.list_custom_fields.side_effect = UpstreamError("boom", status_code=500)
        service = FieldSyncService(repository=repo, client_factory=lambda _: crm_client)

        with pytest.raises(UpstreamError):
            await service.refresh_configuration(configuration)

        stored = await repo.get_field(configuration.id, field.id)
        assert stored.field_name == "Budget"
        assert stored.original_remote_snapshot is None
