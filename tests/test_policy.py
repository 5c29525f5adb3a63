"""Unit tests for the overwrite-policy engine.

Covers the merge scenarios (always / if_empty / empty skip / tag union),
policy properties for every policy, custom-field writes and reporting by
extracted key.
"""

from __future__ import annotations

import pytest

from src.app.extraction.policy import (
    OverwritePolicyEngine,
    is_empty_value,
    should_overwrite,
    union_tags,
)
from src.app.extraction.schemas import ABSENT, CustomFieldValue, OverwritePolicy
from tests.conftest import make_contact, make_field


@pytest.fixture
def engine() -> OverwritePolicyEngine:
    return OverwritePolicyEngine()


# ── Scenarios ────────────────────────────────────────────────────────────────


class TestMergeScenarios:
    def test_always_overwrites_existing_value(self, engine):
        config = make_field(target_key="contact.firstName", overwrite_policy="always")
        contact = make_contact(firstName="John")

        result = engine.merge(contact, {"contact.firstName": "Jane"}, [config])

        assert result.update_payload == {"firstName": "Jane"}
        assert result.updated_keys == ["contact.firstName"]
        assert result.skipped_keys == []

    def test_if_empty_keeps_existing_value(self, engine):
        config = make_field(target_key="contact.firstName", overwrite_policy="if_empty")
        contact = make_contact(firstName="John")

        result = engine.merge(contact, {"contact.firstName": "Jane"}, [config])

        assert result.update_payload == {}
        assert result.skipped_keys == ["contact.firstName"]
        assert result.updated_keys == []

    @pytest.mark.parametrize("policy", ["always", "if_empty", "never", "ask"])
    def test_empty_string_is_skipped_before_policy(self, engine, policy):
        config = make_field(target_key="cf_123", overwrite_policy=policy)

        result = engine.merge(make_contact(), {"cf_123": ""}, [config])

        assert result.update_payload == {}
        assert result.skipped_keys == ["cf_123"]

    def test_tag_union_does_not_duplicate(self, engine):
        config = make_field(target_key="contact.tags", field_name="Tags")
        contact = make_contact(tags=["vip", "lead"])

        result = engine.merge(contact, {"contact.tags": ["vip"]}, [config])

        assert result.update_payload == {"tags": ["vip", "lead"]}
        assert result.updated_keys == ["contact.tags"]


# ── Policy Properties ────────────────────────────────────────────────────────


class TestPolicyProperties:
    @pytest.mark.parametrize("current", ["John", "", None, ABSENT])
    def test_never_never_updates(self, engine, current):
        config = make_field(target_key="contact.firstName", overwrite_policy="never")
        contact = make_contact() if current is ABSENT else make_contact(firstName=current)

        result = engine.merge(contact, {"contact.firstName": "Jane"}, [config])

        assert result.updated_keys == []
        assert result.update_payload == {}

    @pytest.mark.parametrize("current", ["John", "", None])
    def test_always_updates_non_empty_values(self, engine, current):
        config = make_field(target_key="contact.firstName", overwrite_policy="always")
        contact = make_contact(firstName=current)

        result = engine.merge(contact, {"contact.firstName": "Jane"}, [config])

        assert result.updated_keys == ["contact.firstName"]

    @pytest.mark.parametrize(
        "current,expected_update",
        [("John", False), ("", True), (None, True)],
    )
    def test_if_empty_updates_iff_current_empty(self, engine, current, expected_update):
        config = make_field(target_key="contact.firstName", overwrite_policy="if_empty")
        contact = make_contact(firstName=current)

        result = engine.merge(contact, {"contact.firstName": "Jane"}, [config])

        assert (result.updated_keys == ["contact.firstName"]) is expected_update

    def test_if_empty_treats_empty_tag_list_as_empty(self, engine):
        config = make_field(target_key="contact.tags", overwrite_policy="if_empty")
        contact = make_contact(tags=[])

        result = engine.merge(contact, {"contact.tags": "new"}, [config])

        assert result.update_payload == {"tags": ["new"]}

    def test_ask_behaves_like_always(self, engine):
        config = make_field(target_key="contact.firstName", overwrite_policy="ask")
        assert config.overwrite_policy == OverwritePolicy.ASK

        result = engine.merge(
            make_contact(firstName="John"), {"contact.firstName": "Jane"}, [config]
        )

        assert result.update_payload == {"firstName": "Jane"}

    def test_unknown_policy_is_coerced_to_always(self, engine):
        config = make_field(target_key="contact.firstName", overwrite_policy="sometimes")
        assert config.overwrite_policy == OverwritePolicy.ALWAYS

        result = engine.merge(
            make_contact(firstName="John"), {"contact.firstName": "Jane"}, [config]
        )

        assert result.updated_keys == ["contact.firstName"]


class TestPredicates:
    def test_should_overwrite(self):
        assert should_overwrite("always", "x")
        assert should_overwrite(OverwritePolicy.ASK, "x")
        assert should_overwrite(None, "x")
        assert not should_overwrite("never", None)
        assert should_overwrite("if_empty", ABSENT)
        assert should_overwrite("if_empty", [])
        assert not should_overwrite("if_empty", 0)
        assert not should_overwrite("if_empty", False)

    def test_is_empty_value(self):
        assert is_empty_value(ABSENT)
        assert is_empty_value(None)
        assert is_empty_value("")
        assert is_empty_value([])
        assert not is_empty_value(" ")
        assert not is_empty_value(0)

    def test_union_tags_idempotent(self):
        once = union_tags(["lead"], ["vip", "vip"])
        twice = union_tags(once, ["vip"])
        assert once == ["lead", "vip"]
        assert twice == once

    def test_union_tags_coerces_scalars(self):
        assert union_tags(None, "vip") == ["vip"]
        assert union_tags("lead", "vip") == ["lead", "vip"]


# ── Merge Mechanics ──────────────────────────────────────────────────────────


class TestMergeMechanics:
    def test_custom_field_appended_with_target_key_as_id(self, engine):
        config = make_field(target_key="cf_budget", field_name="Budget", field_key="budget")

        result = engine.merge(make_contact(), {"budget": "5000"}, [config])

        assert result.update_payload == {"customFields": [{"id": "cf_budget", "value": "5000"}]}
        assert result.updated_keys == ["budget"]

    def test_custom_field_if_empty_reads_current_custom_value(self, engine):
        config = make_field(target_key="cf_budget", overwrite_policy="if_empty")
        contact = make_contact(customFields=[CustomFieldValue(id="cf_budget", value="100")])

        result = engine.merge(contact, {"cf_budget": "5000"}, [config])

        assert result.skipped_keys == ["cf_budget"]
        assert "customFields" not in result.update_payload

    def test_custom_field_if_empty_writes_when_absent(self, engine):
        config = make_field(target_key="cf_budget", overwrite_policy="if_empty")
        contact = make_contact(customFields=[CustomFieldValue(id="cf_other", value="1")])

        result = engine.merge(contact, {"cf_budget": "5000"}, [config])

        assert result.update_payload["customFields"] == [{"id": "cf_budget", "value": "5000"}]

    def test_snake_case_target_translated_to_native_name(self, engine):
        config = make_field(target_key="contact.date_of_birth", field_name="DOB")

        result = engine.merge(make_contact(), {"contact.date_of_birth": "1990-04-01"}, [config])

        assert result.update_payload == {"dateOfBirth": "1990-04-01"}

    def test_unresolved_key_is_skipped(self, engine):
        result = engine.merge(make_contact(), {"contact.nickname": "JJ"}, [make_field()])

        assert result.skipped_keys == ["contact.nickname"]
        assert result.update_payload == {}

    def test_none_is_skipped_but_empty_list_is_not(self, engine):
        tags = make_field(target_key="contact.tags")
        name = make_field(target_key="contact.firstName")

        result = engine.merge(
            make_contact(tags=["lead"]),
            {"contact.firstName": None, "contact.tags": []},
            [tags, name],
        )

        assert result.skipped_keys == ["contact.firstName"]
        assert result.updated_keys == ["contact.tags"]
        assert result.update_payload == {"tags": ["lead"]}

    def test_reports_in_extractor_order(self, engine):
        configs = [
            make_field(target_key="contact.firstName"),
            make_field(target_key="contact.lastName", overwrite_policy="never"),
            make_field(target_key="cf_1"),
        ]

        result = engine.merge(
            make_contact(lastName="Doe"),
            {"cf_1": "a", "contact.lastName": "Smith", "contact.firstName": "Jane", "x": "y"},
            configs,
        )

        assert result.updated_keys == ["cf_1", "contact.firstName"]
        assert result.skipped_keys == ["contact.lastName", "x"]

    def test_record_is_not_mutated(self, engine):
        contact = make_contact(firstName="John", tags=["lead"])
        before = contact.model_dump()

        engine.merge(
            contact,
            {"contact.firstName": "Jane", "contact.tags": ["vip"]},
            [make_field(target_key="contact.firstName"), make_field(target_key="contact.tags")],
        )

        assert contact.model_dump() == before

    def test_numeric_and_boolean_values_are_written(self, engine):
        configs = [make_field(target_key="cf_count"), make_field(target_key="cf_flag")]

        result = engine.merge(make_contact(), {"cf_count": 0, "cf_flag": False}, configs)

        assert result.update_payload["customFields"] == [
            {"id": "cf_count", "value": 0},
            {"id": "cf_flag", "value": False},
        ]

    def test_written_attributes_map_keys_to_payload_attributes(self, engine):
        configs = [
            make_field(target_key="contact.first_name"),
            make_field(target_key="cf_budget", field_key="budget"),
        ]

        result = engine.merge(
            make_contact(), {"contact.first_name": "Jane", "budget": "5000"}, configs
        )

        assert result.written_attributes == {
            "contact.first_name": "firstName",
            "budget": "customFields",
        }
