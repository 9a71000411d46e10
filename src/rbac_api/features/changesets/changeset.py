"""Staged grant toggles for one role, diffed against the grants seen when editing began.

A :class:`ChangeSet` is immutable; every operation returns a new instance.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from uuid import UUID

from rbac_api.core.errors import ValidationError


class GrantAction(str, Enum):
    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True, slots=True)
class ChangeDiff:
    to_add: tuple[UUID, ...] = ()
    to_remove: tuple[UUID, ...] = ()

    def __len__(self) -> int:
        return len(self.to_add) + len(self.to_remove)


@dataclass(frozen=True, slots=True)
class ChangeSet:
    role_id: UUID
    baseline: frozenset[UUID] = frozenset()
    pending: Mapping[UUID, GrantAction] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def open(cls, role_id: UUID, baseline: Iterable[UUID]) -> ChangeSet:
        return cls(role_id=role_id, baseline=frozenset(baseline))

    def _with_pending(self, pending: dict[UUID, GrantAction]) -> ChangeSet:
        return replace(self, pending=MappingProxyType(pending))

    def stage(self, permission_id: UUID, action: GrantAction | str) -> ChangeSet:
        """Record a toggle.

        Staging the opposite of a pending toggle cancels it. Staging a toggle
        the baseline already satisfies leaves nothing pending for that id.
        """

        action = GrantAction(action)
        pending = dict(self.pending)
        previous = pending.pop(permission_id, None)
        if previous is not None and previous is not action:
            return self._with_pending(pending)

        granted = permission_id in self.baseline
        if (action is GrantAction.ADD) != granted:
            pending[permission_id] = action
        return self._with_pending(pending)

    def unstage(self, permission_id: UUID) -> ChangeSet:
        if permission_id not in self.pending:
            return self
        pending = dict(self.pending)
        del pending[permission_id]
        return self._with_pending(pending)

    def discard(self) -> ChangeSet:
        return self._with_pending({})

    def has_pending_changes(self) -> bool:
        return bool(self.pending)

    def current(self) -> frozenset[UUID]:
        granted = set(self.baseline)
        for permission_id, action in self.pending.items():
            if action is GrantAction.ADD:
                granted.add(permission_id)
            else:
                granted.discard(permission_id)
        return frozenset(granted)

    def diff(self) -> ChangeDiff:
        staged = self.current()
        return ChangeDiff(
            to_add=tuple(sorted(staged - self.baseline, key=str)),
            to_remove=tuple(sorted(self.baseline - staged, key=str)),
        )

    def switch_role(
        self,
        role_id: UUID,
        baseline: Iterable[UUID],
        *,
        discard_pending: bool = False,
    ) -> ChangeSet:
        """Start editing another role; pending toggles must be dropped explicitly."""

        if self.has_pending_changes() and not discard_pending:
            raise ValidationError(
                f"{len(self.pending)} pending change(s) would be discarded; confirm to continue"
            )
        return ChangeSet.open(role_id, baseline)


__all__ = ["ChangeDiff", "ChangeSet", "GrantAction"]
