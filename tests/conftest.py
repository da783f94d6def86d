"""Test fixtures for the campaign lifecycle engine.

Provides:
- store: an empty InMemoryDocumentStore
- gateway: an EntityGateway wired to that store
- brand / campaign / master_plan / micro_plan / content: a small hierarchy
  created through the services, brand avoiding "problem" and "failure"
"""

from datetime import datetime, timezone

import pytest

from src.services.gateway import EntityGateway
from src.shared.document_store import InMemoryDocumentStore


@pytest.fixture()
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def gateway(store: InMemoryDocumentStore) -> EntityGateway:
    return EntityGateway(store)


@pytest.fixture()
def brand(gateway: EntityGateway):
    return gateway.brands.create(
        {
            "name": "Acme Outdoors",
            "description": "Gear for people who like weather",
            "guidelines": {
                "tone": ["confident", "warm"],
                "vocabulary": ["trail", "summit"],
                "avoidedTerms": ["problem", "failure"],
                "keyMessages": [{"audienceSegment": "hikers", "message": "Built for the long haul"}],
            },
        },
        actor="alice",
    )


@pytest.fixture()
def campaign(gateway: EntityGateway, brand):
    return gateway.campaigns.create(
        {
            "brandId": brand.id,
            "name": "Summer Launch",
            "objectives": ["awareness"],
            "startDate": "2024-06-01T00:00:00Z",
            "endDate": "2024-08-31T00:00:00Z",
            "goals": [
                {"type": "A", "priority": 1},
                {"type": "B", "priority": 2},
            ],
            "majorMilestones": [
                {"date": "2024-06-15T00:00:00Z", "description": "Teaser drop"},
                {"date": "2024-07-01T00:00:00Z", "description": "Launch day"},
            ],
        },
        actor="alice",
    )


@pytest.fixture()
def master_plan(gateway: EntityGateway, campaign):
    return gateway.plans.create_master_plan(
        {
            "campaignId": campaign.id,
            "title": "Summer master plan",
            "dateRange": {"start": "2024-06-01T00:00:00Z", "end": "2024-08-31T00:00:00Z"},
            "channels": ["instagram"],
        },
        actor="alice",
    )


@pytest.fixture()
def micro_plan(gateway: EntityGateway, master_plan):
    return gateway.plans.create_micro_plan(
        {
            "masterPlanId": master_plan.id,
            "title": "June week 1",
            "dateRange": {"start": "2024-06-01T00:00:00Z", "end": "2024-06-07T00:00:00Z"},
        },
        actor="alice",
    )


@pytest.fixture()
def content(gateway: EntityGateway, micro_plan):
    return gateway.contents.create(
        {
            "microPlanId": micro_plan.id,
            "title": "Trail teaser",
            "content": "Our new boots never quit on the trail.",
            "platform": "instagram",
            "keywords": ["boots", "trail"],
        },
        actor="bob",
    )


@pytest.fixture()
def fixed_now() -> datetime:
    return datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)
