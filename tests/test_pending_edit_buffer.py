# tests/test_pending_edit_buffer.py


def test_set_overwrites(buffer):
    buffer.set("a1", False)
    buffer.set("a1", True)

    assert buffer.size() == 1
    assert buffer.get("a1") is True


def test_effective_for_overlays_original(buffer):
    buffer.set("a1", False)

    assert buffer.effective_for("a1", True) is False
    assert buffer.effective_for("a2", True) is True
    assert buffer.effective_for("a2", False) is False


def test_clear_empties_everything(buffer):
    buffer.bulk_set(["a1", "a2", "a3"], False)
    buffer.clear()

    assert buffer.is_empty()
    assert len(buffer) == 0


def test_bulk_set_without_overwrite_keeps_existing(buffer):
    buffer.set("a1", True)
    buffer.bulk_set(["a1", "a2"], False, overwrite=False)

    assert buffer.edits() == {"a1": True, "a2": False}


def test_edits_returns_a_copy(buffer):
    buffer.set("a1", True)
    edits = buffer.edits()
    edits["a2"] = False

    assert "a2" not in buffer


def test_pending_diff_only_mode(buffer):
    buffer.set("a1", False)
    buffer.set("a2", True)
    buffer.set("a3", True)

    pending = buffer.pending({"a1": True, "a2": True})

    # a3 has no original and defaults to present
    assert pending == [("a1", False)]
    assert len(buffer.pending()) == 3


def test_summary_counts(buffer):
    buffer.bulk_set(["a1", "a2"], False)
    buffer.set("a3", True)

    assert buffer.summary() == {True: 1, False: 2}

