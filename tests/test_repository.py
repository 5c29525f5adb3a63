"""Unit tests for ExtractionRepository helpers that need no database."""

from __future__ import annotations

import uuid
from unittest.mock import MagicMock

from src.app.extraction.models import ExtractionFieldModel
from src.app.extraction.repository import (
    ExtractionRepository,
    _model_to_field,
    _parse_uuid,
)
from src.app.extraction.schemas import OverwritePolicy
from src.app.extraction.standard_fields import FieldClass


class TestModelConversion:
    def test_stored_row_becomes_config(self):
        field_id = uuid.uuid4()
        config_id = uuid.uuid4()
        model = ExtractionFieldModel(
            id=field_id,
            config_id=config_id,
            field_name="Budget",
            target_key="cf_budget",
            field_key="budget",
            field_type="MONETORY",
            field_class="custom",
            overwrite_policy="if_empty",
            original_remote_snapshot={"id": "cf_budget", "name": "Budget", "options": []},
            picklist_options=None,
            sort_order=3,
        )

        config = _model_to_field(model)

        assert config.id == str(field_id)
        assert config.config_id == str(config_id)
        assert config.field_class == FieldClass.CUSTOM
        assert config.overwrite_policy == OverwritePolicy.IF_EMPTY
        assert config.original_remote_snapshot.get_extra("options") == []
        assert config.picklist_options == []
        assert config.sort_order == 3

    def test_empty_snapshot_and_unknown_policy(self):
        model = ExtractionFieldModel(
            id=uuid.uuid4(),
            config_id=uuid.uuid4(),
            field_name="City",
            target_key="contact.city",
            field_class=None,
            overwrite_policy="whenever",
            original_remote_snapshot={},
        )

        config = _model_to_field(model)

        assert config.original_remote_snapshot is None
        assert config.overwrite_policy == OverwritePolicy.ALWAYS
        assert config.field_class == FieldClass.STANDARD


class TestMalformedIds:
    def test_parse_uuid(self):
        value = uuid.uuid4()
        assert _parse_uuid(str(value)) == value
        assert _parse_uuid("not-a-uuid") is None

    async def test_malformed_ids_are_not_found_without_a_query(self):
        session_factory = MagicMock()
        repo = ExtractionRepository(session_factory=session_factory)

        assert await repo.get_configuration("nope") is None
        assert await repo.list_fields("nope") == []
        assert await repo.get_field(str(uuid.uuid4()), "nope") is None
        assert await repo.delete_field("nope", str(uuid.uuid4())) is False
        session_factory.assert_not_called()
