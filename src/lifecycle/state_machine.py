"""
Lifecycle state machines for campaigns, plans and content.

Each machine owns a fixed transition table. ``transition`` validates the
requested move and returns a new document with ``state`` and a merged
``stateMetadata``; it never writes to the store.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, TypeVar

from src.lifecycle.merge import merge
from src.shared.logging_utils import info as log_info
from src.specs.common.base_document_spec import BaseDocument
from src.specs.common.datetime_utils import utc_now
from src.specs.common.enums import CampaignState, ContentState, EntityType, PlanState
from src.specs.common.errors import InvalidTransitionError

D = TypeVar("D", bound=BaseDocument)

EntryEffect = Callable[[Mapping[str, Any]], Dict[str, Any]]


def _state_value(state: Any) -> str:
    return getattr(state, "value", state)


@dataclass(frozen=True)
class StateMachine:
    name: str
    initial: str
    transitions: Mapping[str, Tuple[str, ...]]
    # Plans list the allowed moves in the error message
    list_allowed_in_error: bool = False
    on_enter: Mapping[str, EntryEffect] = field(default_factory=dict)

    def allowed_targets(self, current: Any) -> Tuple[str, ...]:
        return self.transitions.get(_state_value(current), ())

    def can_transition(self, current: Any, target: Any) -> bool:
        return _state_value(target) in self.allowed_targets(current)

    def validate(self, current: Any, target: Any) -> None:
        if not self.can_transition(current, target):
            raise InvalidTransitionError(
                self.name,
                _state_value(current),
                _state_value(target),
                self.allowed_targets(current),
                include_allowed=self.list_allowed_in_error,
            )

    def transition(
        self,
        document: D,
        target: Any,
        actor: str,
        comment: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> D:
        """Return a copy of ``document`` moved to ``target``.

        ``comment=None`` keeps the previous comment.
        """
        current = _state_value(getattr(document, "state"))
        target_value = _state_value(target)
        self.validate(current, target_value)

        stamp = now or utc_now()
        body = document.to_document()
        updates: Dict[str, Any] = {
            "state": target_value,
            "updatedAt": stamp,
            "stateMetadata": {"updatedBy": actor, "comments": comment, "updatedAt": stamp},
        }
        effect = self.on_enter.get(target_value)
        if effect is not None:
            updates = merge(updates, effect(body))

        result = type(document).model_validate(merge(body, updates))
        log_info(document.id, "lifecycle:transition", machine=self.name, fromState=current, toState=target_value, actor=actor)
        return result


def _plan_activated(doc: Mapping[str, Any]) -> Dict[str, Any]:
    previous = (doc.get("stateMetadata") or {}).get("version") or 1
    return {"isActive": True, "stateMetadata": {"version": previous + 1}}


CONTENT_WORKFLOW = StateMachine(
    name="content",
    initial=ContentState.DRAFT.value,
    transitions={
        ContentState.DRAFT.value: (ContentState.READY.value,),
        ContentState.READY.value: (ContentState.DRAFT.value, ContentState.PUBLISHED.value),
        ContentState.PUBLISHED.value: (),
    },
)

PLAN_WORKFLOW = StateMachine(
    name="plan",
    initial=PlanState.DRAFT.value,
    transitions={
        PlanState.DRAFT.value: (PlanState.REVIEW.value, PlanState.APPROVED.value),
        PlanState.REVIEW.value: (PlanState.DRAFT.value, PlanState.APPROVED.value),
        PlanState.APPROVED.value: (PlanState.ACTIVE.value, PlanState.DRAFT.value),
        PlanState.ACTIVE.value: (PlanState.DRAFT.value,),
    },
    list_allowed_in_error=True,
    on_enter={PlanState.ACTIVE.value: _plan_activated},
)

CAMPAIGN_WORKFLOW = StateMachine(
    name="campaign",
    initial=CampaignState.DRAFT.value,
    transitions={
        CampaignState.DRAFT.value: (CampaignState.ACTIVE.value,),
        CampaignState.ACTIVE.value: (CampaignState.COMPLETED.value, CampaignState.ARCHIVED.value),
        CampaignState.COMPLETED.value: (CampaignState.ARCHIVED.value,),
        CampaignState.ARCHIVED.value: (),
    },
)

WORKFLOWS: Dict[EntityType, StateMachine] = {
    EntityType.CONTENT: CONTENT_WORKFLOW,
    EntityType.MASTER_PLAN: PLAN_WORKFLOW,
    EntityType.MICRO_PLAN: PLAN_WORKFLOW,
    EntityType.CAMPAIGN: CAMPAIGN_WORKFLOW,
}


def machine_for(entity_type: EntityType) -> Optional[StateMachine]:
    return WORKFLOWS.get(EntityType(entity_type))
