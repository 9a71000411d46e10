from __future__ import annotations

from uuid import uuid4

import pytest

from rbac_api.core.errors import ValidationError
from rbac_api.features.changesets.changeset import ChangeSet, GrantAction


def test_opposite_toggle_cancels_pending_change() -> None:
    permission = uuid4()
    changeset = ChangeSet.open(uuid4(), [])

    staged = changeset.stage(permission, GrantAction.ADD)
    assert staged.has_pending_changes()

    cancelled = staged.stage(permission, "remove")
    assert not cancelled.has_pending_changes()
    assert len(cancelled.diff()) == 0


def test_toggle_matching_baseline_is_dropped() -> None:
    granted = uuid4()
    changeset = ChangeSet.open(uuid4(), [granted])

    assert not changeset.stage(granted, GrantAction.ADD).has_pending_changes()


def test_operations_do_not_mutate_original() -> None:
    changeset = ChangeSet.open(uuid4(), [])

    changeset.stage(uuid4(), GrantAction.ADD)

    assert not changeset.has_pending_changes()
    with pytest.raises(TypeError):
        changeset.pending[uuid4()] = GrantAction.ADD  # type: ignore[index]


def test_diff_against_baseline() -> None:
    kept, dropped, added = uuid4(), uuid4(), uuid4()
    changeset = (
        ChangeSet.open(uuid4(), [kept, dropped])
        .stage(dropped, GrantAction.REMOVE)
        .stage(added, GrantAction.ADD)
    )

    diff = changeset.diff()

    assert diff.to_add == (added,)
    assert diff.to_remove == (dropped,)
    assert changeset.current() == frozenset({kept, added})


def test_unstage_and_discard() -> None:
    first, second = uuid4(), uuid4()
    changeset = (
        ChangeSet.open(uuid4(), [])
        .stage(first, GrantAction.ADD)
        .stage(second, GrantAction.ADD)
    )

    assert set(changeset.unstage(first).pending) == {second}
    assert changeset.unstage(uuid4()) is changeset
    assert not changeset.discard().has_pending_changes()


def test_switch_role_requires_confirmation_with_pending_changes() -> None:
    other_role = uuid4()
    changeset = ChangeSet.open(uuid4(), []).stage(uuid4(), GrantAction.ADD)

    with pytest.raises(ValidationError, match="pending change"):
        changeset.switch_role(other_role, [])

    switched = changeset.switch_role(other_role, [], discard_pending=True)
    assert switched.role_id == other_role
    assert not switched.has_pending_changes()
