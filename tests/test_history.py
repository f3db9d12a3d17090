from flowcraft.history import EditHistory


def test_undo_then_redo():
    history = EditHistory()
    history.record("a")

    assert history.undo("b") == "a"
    assert history.redo("a") == "b"
    assert history.can_undo
    assert not history.can_redo


def test_empty_stacks_return_nothing():
    history = EditHistory()

    assert history.undo("x") is None
    assert history.redo("x") is None


def test_new_edit_clears_redo():
    history = EditHistory()
    history.record("a")
    history.undo("b")
    history.record("a")

    assert not history.can_redo


def test_capacity_drops_oldest():
    history = EditHistory(limit=50)
    current = "edit-0"
    for i in range(1, 52):
        history.record(current)
        current = f"edit-{i}"

    assert len(history) == 50
    undone = []
    for _ in range(50):
        current = history.undo(current)
        undone.append(current)

    # edit-0 (the state before the first edit) was evicted
    assert undone[-1] == "edit-1"
    assert history.undo(current) is None


def test_clear():
    history = EditHistory()
    history.record("a")
    history.undo("b")
    history.clear()

    assert not history.can_undo
    assert not history.can_redo
