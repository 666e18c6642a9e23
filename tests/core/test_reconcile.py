from __future__ import annotations

from qk_core.model import Quote
from qk_core.reconcile import reconcile


def test_remote_wins_and_new_records_append() -> None:
    local = [Quote(1, "A", "X")]
    remote = [Quote(1, "A2", "X"), Quote(2, "B", "Y")]

    merged, result = reconcile(local, remote)

    assert merged == [Quote(1, "A2", "X"), Quote(2, "B", "Y")]
    assert result.conflicts_resolved == 1
    assert result.new_records == 1
    assert result.conflict_ids == [1]
    assert result.new_ids == [2]
    assert local == [Quote(1, "A", "X")]


def test_identical_records_are_not_conflicts() -> None:
    local = [Quote(1, "A", "X"), Quote(2, "B", "Y")]
    merged, result = reconcile(local, [Quote(2, "B", "Y")])
    assert merged == local
    assert result.conflicts_resolved == 0
    assert result.unchanged == 1
    assert not result.changed


def test_category_change_is_a_conflict() -> None:
    merged, result = reconcile([Quote(1, "A", "X")], [Quote(1, "A", "W")])
    assert merged == [Quote(1, "A", "W")]
    assert result.conflicts_resolved == 1


def test_local_only_records_survive_in_place() -> None:
    local = [Quote(10, "mine", "L"), Quote(1, "A", "X"), Quote(11, "also mine", "L")]
    merged, _ = reconcile(local, [Quote(1, "A2", "X")])
    assert merged == [Quote(10, "mine", "L"), Quote(1, "A2", "X"), Quote(11, "also mine", "L")]


def test_second_application_is_clean() -> None:
    local = [Quote(1, "A", "X"), Quote(5, "local", "L")]
    remote = [Quote(1, "A2", "X"), Quote(2, "B", "Y")]
    once, first = reconcile(local, remote)
    twice, second = reconcile(once, remote)
    assert first.conflicts_resolved == 1
    assert second.conflicts_resolved == 0
    assert second.new_records == 0
    assert twice == once


def test_repeated_remote_id_last_one_wins() -> None:
    merged, result = reconcile([], [Quote(3, "first", "X"), Quote(3, "second", "X")])
    assert merged == [Quote(3, "second", "X")]
    assert result.new_records == 1
    assert result.conflicts_resolved == 0


def test_repeated_remote_id_reapplied_is_clean() -> None:
    remote = [Quote(1, "A", "X"), Quote(1, "B", "X")]
    once, first = reconcile([], remote)
    twice, second = reconcile(once, remote)
    assert once == [Quote(1, "B", "X")]
    assert first.new_records == 1
    assert second.conflicts_resolved == 0
    assert second.unchanged == 1
    assert twice == once


def test_repeated_remote_id_conflicts_once() -> None:
    local = [Quote(1, "A", "X")]
    merged, result = reconcile(local, [Quote(1, "B", "X"), Quote(1, "C", "X")])
    assert merged == [Quote(1, "C", "X")]
    assert result.conflicts_resolved == 1
    assert result.conflict_ids == [1]


def test_empty_remote_changes_nothing() -> None:
    local = [Quote(1, "A", "X")]
    merged, result = reconcile(local, [])
    assert merged == local
    assert (result.conflicts_resolved, result.new_records) == (0, 0)
