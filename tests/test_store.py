from conftest import make_task
from obra_board.board.store import TaskStore


def test_replace_all_keeps_arrival_order():
    store = TaskStore([make_task("b"), make_task("a")])
    assert [t.id for t in store] == ["b", "a"]
    assert len(store) == 2
    assert "a" in store


def test_replace_all_swaps_everything():
    store = TaskStore([make_task("a"), make_task("b")])
    store.replace_all([make_task("c")])
    assert [t.id for t in store] == ["c"]
    assert store.get("a") is None


def test_apply_patch_changes_only_given_fields():
    store = TaskStore([make_task("a", "todo", 3, title="Reboco")])
    revision = store.revision

    updated = store.apply_patch({"a": {"lane": "done"}})

    task = store.get("a")
    assert [t.id for t in updated] == ["a"]
    assert (task.lane, task.sort_order, task.title) == ("done", 3, "Reboco")
    assert store.revision == revision + 1


def test_apply_patch_skips_unknown_ids():
    store = TaskStore([make_task("a")])
    revision = store.revision
    assert store.apply_patch({"zzz": {"lane": "done"}}) == []
    assert store.revision == revision


def test_tasks_are_not_mutated_in_place():
    original = make_task("a", "todo")
    store = TaskStore([original])
    store.apply_patch({"a": {"lane": "doing"}})
    assert original.lane == "todo"
