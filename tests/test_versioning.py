"""Tests for version chains: mutate, fork, activation and lazy repair."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from src.specs.common.enums import UpdateMode
from src.specs.common.errors import ResourceNotFoundError

T0 = datetime(2024, 6, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def chain(gateway):
    return gateway.repos.campaigns


def _active_ids(members):
    return [m.id for m in members if m.isActive]


class TestMutateAndFork:
    def test_mutate_keeps_id_and_version(self, chain, campaign) -> None:
        updated = chain.apply_update(campaign, {"description": "Hot"}, UpdateMode.MUTATE, "bob", now=T0)
        assert updated.id == campaign.id
        assert updated.version == 1
        assert updated.updatedAt == T0
        assert chain.repository.get(campaign.id).description == "Hot"
        assert len(chain.list_versions(campaign.id)) == 1

    def test_fork_creates_next_version(self, chain, campaign) -> None:
        v2 = chain.apply_update(campaign, {"description": "Hot"}, UpdateMode.FORK, "bob", now=T0)
        assert v2.id != campaign.id
        assert v2.version == 2
        assert v2.rootId == campaign.id
        assert v2.previousVersionId == campaign.id
        assert v2.isActive is True
        assert v2.createdAt == T0
        assert v2.name == campaign.name
        assert chain.repository.get(campaign.id).isActive is False

    def test_fork_of_fork_points_at_original_root(self, chain, campaign) -> None:
        v2 = chain.apply_update(campaign, {"description": "two"}, UpdateMode.FORK, "bob")
        v3 = chain.apply_update(v2, {"description": "three"}, UpdateMode.FORK, "bob")
        assert v3.rootId == campaign.id
        assert v3.previousVersionId == v2.id
        assert v3.version == 3
        assert [m.version for m in chain.list_versions(v2.id)] == [1, 2, 3]
        assert _active_ids(chain.list_versions(campaign.id)) == [v3.id]

    def test_active_resolves_from_any_member(self, chain, campaign) -> None:
        v2 = chain.apply_update(campaign, {"description": "two"}, UpdateMode.FORK, "bob")
        assert chain.get_active(campaign.id).id == v2.id
        assert chain.get_active(v2.id).id == v2.id

    def test_get_version(self, chain, campaign) -> None:
        v2 = chain.apply_update(campaign, {"description": "two"}, UpdateMode.FORK, "bob")
        assert chain.get_version(campaign.id, 2).id == v2.id
        assert chain.get_version(v2.id, 1).id == campaign.id
        with pytest.raises(ResourceNotFoundError) as excinfo:
            chain.get_version(campaign.id, 5)
        assert excinfo.value.resource_id == f"{campaign.id} v5"


class TestActivation:
    def test_activate_older_version(self, chain, campaign) -> None:
        v2 = chain.apply_update(campaign, {"description": "two"}, UpdateMode.FORK, "bob")
        restored = chain.activate_version(campaign.id, "carol", now=T0)
        assert restored.isActive is True
        assert restored.stateMetadata.updatedBy == "carol"
        assert restored.stateMetadata.comments == "Activated version 1"
        assert restored.updatedAt == T0
        assert chain.repository.get(v2.id).isActive is False
        assert chain.get_active(v2.id).id == campaign.id

    def test_activating_active_version_is_harmless(self, chain, campaign) -> None:
        chain.activate_version(campaign.id, "carol")
        assert _active_ids(chain.list_versions(campaign.id)) == [campaign.id]


class TestChainRepair:
    def test_racing_forks_leave_latest_update_active(self, chain, campaign, caplog) -> None:
        first = chain.apply_update(campaign, {"description": "A"}, UpdateMode.FORK, "alice", now=T0)
        second = chain.apply_update(
            campaign, {"description": "B"}, UpdateMode.FORK, "bob", now=T0 + timedelta(minutes=1)
        )
        assert first.version == second.version == 2

        with caplog.at_level(logging.WARNING, logger="campaignengine"):
            members = chain.list_versions(campaign.id)
        assert _active_ids(members) == [second.id]
        assert chain.repository.get(first.id).isActive is False
        assert any(r.getMessage() == "version:chain_repaired" for r in caplog.records)
        assert chain.get_active(first.id).id == second.id

    def test_colliding_version_numbers_resolve_to_active_member(self, chain, campaign) -> None:
        first = chain.apply_update(campaign, {"description": "A"}, UpdateMode.FORK, "alice", now=T0 + timedelta(minutes=1))
        second = chain.apply_update(campaign, {"description": "B"}, UpdateMode.FORK, "bob", now=T0)
        assert chain.get_version(campaign.id, 2).id == first.id
        chain.activate_version(second.id, "carol")
        assert chain.get_version(first.id, 2).id == second.id

    def test_tie_on_update_time_prefers_higher_version(self, chain, campaign, store) -> None:
        v2 = chain.apply_update(campaign, {"description": "two"}, UpdateMode.FORK, "bob", now=T0)
        store.update_in_place("campaigns", campaign.id, {"isActive": True, "updatedAt": T0})
        assert chain.get_active(campaign.id).id == v2.id

    def test_chain_without_active_member_activates_highest_version(self, chain, campaign, store) -> None:
        v2 = chain.apply_update(campaign, {"description": "two"}, UpdateMode.FORK, "bob")
        store.update_in_place("campaigns", v2.id, {"isActive": False})
        assert chain.get_active(campaign.id).id == v2.id
        assert store.get("campaigns", v2.id)["isActive"] is True

    def test_healthy_chain_is_not_rewritten(self, chain, campaign, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="campaignengine"):
            chain.list_versions(campaign.id)
        assert not any(r.getMessage() == "version:chain_repaired" for r in caplog.records)


def test_missing_chain_raises_not_found(chain) -> None:
    with pytest.raises(ResourceNotFoundError):
        chain.get_active("nope")
