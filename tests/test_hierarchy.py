"""Tests for upward and downward walks of the entity hierarchy."""

import pytest

from src.specs.common.enums import EntityType, UpdateMode
from src.specs.common.errors import ReferentialIntegrityError, ResourceNotFoundError, ValidationError


@pytest.fixture()
def hierarchy(gateway):
    return gateway.repos.hierarchy


class TestUpward:
    def test_brand_for_content_walks_the_chain(self, hierarchy, content, brand) -> None:
        assert hierarchy.brand_for_content(content).id == brand.id

    def test_campaign_for_master_resolves_active_version(self, gateway, hierarchy, campaign, master_plan) -> None:
        v2 = gateway.campaigns.update(campaign.id, {"description": "v2"}, UpdateMode.FORK)
        assert hierarchy.campaign_for(master_plan).id == v2.id

    def test_missing_micro_plan_is_a_referential_error(self, gateway, hierarchy, content, micro_plan) -> None:
        gateway.plans.delete(micro_plan.id)
        with pytest.raises(ReferentialIntegrityError) as excinfo:
            hierarchy.brand_for_content(content)
        assert excinfo.value.details == {"missingId": micro_plan.id}

    def test_missing_campaign_is_a_referential_error(self, gateway, hierarchy, campaign, master_plan) -> None:
        gateway.campaigns.delete(campaign.id)
        with pytest.raises(ReferentialIntegrityError):
            hierarchy.brand_for_plan(master_plan)


class TestContentUnder:
    @pytest.mark.parametrize(
        "kind,fixture_name",
        [
            (EntityType.BRAND, "brand"),
            (EntityType.CAMPAIGN, "campaign"),
            (EntityType.MASTER_PLAN, "master_plan"),
            (EntityType.MICRO_PLAN, "micro_plan"),
            (EntityType.CONTENT, "content"),
        ],
    )
    def test_each_level_finds_the_content(self, request, hierarchy, content, kind, fixture_name) -> None:
        entity = request.getfixturevalue(fixture_name)
        assert [c.id for c in hierarchy.content_under(kind, entity.id)] == [content.id]

    def test_campaign_lookup_spans_versions(self, gateway, hierarchy, campaign, content) -> None:
        v2 = gateway.campaigns.update(campaign.id, {"description": "v2"}, UpdateMode.FORK)
        assert [c.id for c in hierarchy.content_under(EntityType.CAMPAIGN, v2.id)] == [content.id]

    def test_only_active_content_versions(self, gateway, hierarchy, micro_plan, content) -> None:
        v2 = gateway.contents.update(content.id, {"title": "v2"}, UpdateMode.FORK)
        assert [c.id for c in hierarchy.content_under(EntityType.MICRO_PLAN, micro_plan.id)] == [v2.id]

    def test_standalone_content_belongs_to_brand_only(self, gateway, hierarchy, brand, campaign, content) -> None:
        solo = gateway.contents.create({"brandId": brand.id, "title": "Solo", "content": "Hi"})
        assert [c.id for c in hierarchy.content_under(EntityType.BRAND, brand.id)] == [content.id, solo.id]
        assert [c.id for c in hierarchy.content_under(EntityType.CAMPAIGN, campaign.id)] == [content.id]

    def test_untagged_plans_are_found(self, store, hierarchy, master_plan) -> None:
        store.insert(
            "plans",
            {
                "id": "legacy-micro",
                "brandId": master_plan.brandId,
                "masterPlanId": master_plan.id,
                "title": "Legacy week",
                "dateRange": {"start": "2024-06-01T00:00:00Z", "end": "2024-06-07T00:00:00Z"},
                "createdAt": "2024-06-01T00:00:00Z",
                "updatedAt": "2024-06-01T00:00:00Z",
                "stateMetadata": {"updatedBy": "legacy"},
            },
        )
        assert [p.id for p in hierarchy.micro_plans_for(master_plan.id)] == ["legacy-micro"]

    def test_unknown_parent(self, hierarchy) -> None:
        with pytest.raises(ResourceNotFoundError):
            hierarchy.content_under(EntityType.MICRO_PLAN, "gone")

    def test_unknown_entity_type(self, hierarchy) -> None:
        with pytest.raises(ValidationError):
            hierarchy.content_under("post", "x")
