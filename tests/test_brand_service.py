"""Tests for BrandService: uniqueness, lookups and guideline edits."""

import pytest

from src.lifecycle.merge import CLEAR
from src.specs.common.errors import ConflictError, ResourceNotFoundError, ValidationError


class TestCreateAndLookup:
    def test_create_stamps_metadata(self, brand) -> None:
        assert brand.id
        assert brand.createdAt == brand.updatedAt
        assert brand.stateMetadata.updatedBy == "alice"
        assert brand.stateMetadata.version == 1

    def test_engine_fields_in_payload_are_ignored(self, gateway) -> None:
        created = gateway.brands.create({"id": "mine", "name": "Other", "description": "d", "version": 9})
        assert created.id != "mine"
        assert created.stateMetadata.updatedBy == "system"

    def test_duplicate_name_conflicts(self, gateway, brand) -> None:
        with pytest.raises(ConflictError) as excinfo:
            gateway.brands.create({"name": "Acme Outdoors", "description": "copy"})
        assert excinfo.value.code == "CONFLICT"

    def test_missing_required_field_is_a_validation_error(self, gateway) -> None:
        with pytest.raises(ValidationError) as excinfo:
            gateway.brands.create({"name": "Nameless"})
        assert any(e["loc"] == ["description"] for e in excinfo.value.details["errors"])

    def test_resolve_by_id_or_name(self, gateway, brand) -> None:
        assert gateway.brands.resolve(brand_id=brand.id).id == brand.id
        assert gateway.brands.resolve(brand_name="Acme Outdoors").id == brand.id

    def test_resolve_requires_a_key(self, gateway) -> None:
        with pytest.raises(ValidationError):
            gateway.brands.resolve()

    def test_resolve_unknown_name(self, gateway) -> None:
        with pytest.raises(ResourceNotFoundError):
            gateway.brands.resolve(brand_name="Nobody")

    def test_list_sorted_by_name(self, gateway, brand) -> None:
        gateway.brands.create({"name": "aardvark supply", "description": "d"})
        assert [b.name for b in gateway.brands.list()] == ["aardvark supply", "Acme Outdoors"]


class TestUpdate:
    def test_rename_to_taken_name_conflicts(self, gateway, brand) -> None:
        other = gateway.brands.create({"name": "Beta", "description": "d"})
        with pytest.raises(ConflictError):
            gateway.brands.update(other.id, {"name": "Acme Outdoors"})

    def test_guidelines_merge_field_by_field(self, gateway, brand) -> None:
        updated = gateway.brands.update(brand.id, {"guidelines": {"tone": ["playful"]}}, actor="bob", comment="tone")
        assert updated.guidelines.tone == ["playful"]
        assert updated.guidelines.avoidedTerms == ["problem", "failure"]
        assert updated.stateMetadata.updatedBy == "bob"
        assert updated.stateMetadata.comments == "tone"
        assert gateway.brands.get(brand.id).guidelines.tone == ["playful"]

    def test_key_messages_merge_by_audience_segment(self, gateway, brand) -> None:
        gateway.brands.add_key_message(brand.id, "hikers", "Go further")
        updated = gateway.brands.add_key_message(brand.id, "climbers", "Hold on")
        messages = {m.audienceSegment: m.message for m in updated.guidelines.keyMessages}
        assert messages == {"hikers": "Go further", "climbers": "Hold on"}

    def test_clear_optional_field(self, gateway, brand) -> None:
        updated = gateway.brands.update(brand.id, {"guidelines": CLEAR})
        assert updated.guidelines is None

    def test_clear_required_field_is_rejected(self, gateway, brand) -> None:
        with pytest.raises(ValidationError):
            gateway.brands.update(brand.id, {"description": CLEAR})
        assert gateway.brands.get(brand.id).description == "Gear for people who like weather"

    def test_state_metadata_cannot_be_cleared(self, gateway, brand) -> None:
        with pytest.raises(ValidationError):
            gateway.update("brand", brand.id, {"stateMetadata": {"$clear": True}})
        assert gateway.brands.get(brand.id).stateMetadata.updatedBy == "alice"

    def test_state_metadata_replace_is_merged_over_the_stamp(self, gateway, brand) -> None:
        updated = gateway.update("brand", brand.id, {"stateMetadata": {"$replace": {"comments": "noted"}}}, actor="bob")
        assert updated.stateMetadata.comments == "noted"
        assert updated.stateMetadata.updatedBy == "bob"
        assert updated.stateMetadata.version == 1

    def test_brands_have_no_state(self, gateway, brand) -> None:
        with pytest.raises(ValidationError):
            gateway.brands.update(brand.id, {"state": "active"})


def test_delete(gateway, brand) -> None:
    assert gateway.brands.delete(brand.id) is True
    with pytest.raises(ResourceNotFoundError):
        gateway.brands.get(brand.id)
