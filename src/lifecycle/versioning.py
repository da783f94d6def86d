"""
Version chains for campaigns and content.

A chain is the first version (rootId=None) plus every document whose
rootId points at it. Updates either mutate the given document in place or
fork a new chain member; exactly one member is active at a time.

Forks and activations are sequences of independent writes. Reads through
``get_active``/``list_versions`` repair a chain left with zero or several
active members by an interrupted or racing write.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, List, Mapping, Optional, Tuple, TypeVar

from src.lifecycle.repository import DocumentRepository, TransitionGuard, new_document_id
from src.shared.logging_utils import info as log_info, warning as log_warning
from src.specs.common.base_document_spec import VersionedDocument
from src.specs.common.datetime_utils import EPOCH, ensure_utc, utc_now
from src.specs.common.enums import UpdateMode
from src.specs.common.errors import ResourceNotFoundError

V = TypeVar("V", bound=VersionedDocument)


def _canonical_key(doc: VersionedDocument) -> Tuple[datetime, int]:
    return (ensure_utc(doc.updatedAt) if doc.updatedAt else EPOCH, doc.version)


class VersionChainManager(Generic[V]):
    def __init__(self, repository: DocumentRepository[V]):
        self.repository = repository

    @property
    def resource_name(self) -> str:
        return self.repository.resource_name

    def chain(self, root_id: str) -> List[V]:
        """All members of the chain rooted at ``root_id``, oldest version first."""
        members = {}
        root = self.repository.find_by_id(root_id)
        if root is not None:
            members[root.id] = root
        for doc in self.repository.find({"rootId": root_id}):
            members[doc.id] = doc
        return sorted(members.values(), key=lambda d: (d.version, d.createdAt))

    def _chain_for(self, doc_id: str) -> List[V]:
        doc = self.repository.get(doc_id)
        members = self.chain(doc.chain_root_id)
        return members or [doc]

    def repair_chain(self, members: List[V]) -> List[V]:
        """Leave exactly one active member; return the chain as stored afterwards."""
        if not members:
            return members
        active = [m for m in members if m.isActive]
        if len(active) == 1:
            return members

        if active:
            canonical = max(active, key=_canonical_key)
        else:
            canonical = max(members, key=lambda d: d.version)

        repaired: List[V] = []
        for member in members:
            should_be_active = member.id == canonical.id
            if member.isActive != should_be_active:
                self.repository.patch(member.id, {"isActive": should_be_active})
                member = member.model_copy(update={"isActive": should_be_active})
            repaired.append(member)

        log_warning(
            canonical.id,
            "version:chain_repaired",
            resource=self.resource_name,
            rootId=canonical.chain_root_id,
            activeBefore=len(active),
        )
        return repaired

    def list_versions(self, doc_id: str) -> List[V]:
        return self.repair_chain(self._chain_for(doc_id))

    def get_active(self, doc_id: str) -> V:
        """Resolve any chain member's id (or the root id) to the active version."""
        members = self.list_versions(doc_id)
        for member in members:
            if member.isActive:
                return member
        raise ResourceNotFoundError(self.resource_name, doc_id)

    def get_version(self, doc_id: str, version: int) -> V:
        """Chain member with ``version``.

        Racing forks can leave several members with the same number; the
        active one wins, then the latest update.
        """
        matching = [m for m in self.list_versions(doc_id) if m.version == version]
        if not matching:
            raise ResourceNotFoundError(self.resource_name, f"{doc_id} v{version}")
        return max(matching, key=lambda d: (d.isActive, _canonical_key(d)))

    def apply_update(
        self,
        existing: V,
        partial: Mapping[str, Any],
        mode: UpdateMode = UpdateMode.MUTATE,
        actor: str = "system",
        comment: Optional[str] = None,
        guard: Optional[TransitionGuard] = None,
        now: Optional[datetime] = None,
    ) -> V:
        stamp = now or utc_now()
        merged = self.repository.merge_update(existing, partial, actor, comment, stamp, guard)

        if UpdateMode(mode) == UpdateMode.MUTATE:
            saved = self.repository.save(merged)
            log_info(existing.id, "version:mutate", resource=self.resource_name, version=existing.version)
            return saved

        root_id = existing.rootId or existing.id
        forked = merged.model_copy(
            update={
                "id": new_document_id(),
                "createdAt": stamp,
                "version": existing.version + 1,
                "isActive": True,
                "previousVersionId": existing.id,
                "rootId": root_id,
            }
        )
        self.repository.insert(forked)
        self.repository.patch(existing.id, {"isActive": False})
        log_info(
            forked.id,
            "version:fork",
            resource=self.resource_name,
            rootId=root_id,
            previousVersionId=existing.id,
            version=forked.version,
        )
        return forked

    def activate_version(self, doc_id: str, actor: str, now: Optional[datetime] = None) -> V:
        """Make ``doc_id`` the active member of its chain."""
        stamp = now or utc_now()
        target = self.repository.get(doc_id)
        members = self.chain(target.chain_root_id) or [target]

        for member in members:
            if member.isActive and member.id != target.id:
                self.repository.patch(member.id, {"isActive": False})

        meta = target.stateMetadata.model_copy(
            update={
                "updatedBy": actor,
                "comments": f"Activated version {target.version}",
                "updatedAt": stamp,
            }
        )
        activated = target.model_copy(update={"isActive": True, "updatedAt": stamp, "stateMetadata": meta})
        self.repository.save(activated)
        log_info(
            activated.id,
            "version:activate",
            resource=self.resource_name,
            rootId=activated.chain_root_id,
            version=activated.version,
            actor=actor,
        )
        return activated
