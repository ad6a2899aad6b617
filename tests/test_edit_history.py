import pytest

from models.edit_history import EditHistory
from models.errors import InvalidParameter, NoOp
from models.pixel_buffer import PixelBuffer

from conftest import solid


def shade(value):
    return solid(2, 2, (value, value, value, 255))


@pytest.fixture
def history():
    h = EditHistory(capacity=20)
    h.seed(shade(0))
    return h


def test_starts_empty():
    h = EditHistory(capacity=5)
    assert h.is_empty
    assert len(h) == 0
    assert not h.can_undo and not h.can_redo
    with pytest.raises(NoOp):
        h.undo()


def test_seed_resets_to_single_entry(history):
    history.commit(shade(1))
    history.commit(shade(2))
    history.seed(shade(9))
    assert len(history) == 1
    assert history.cursor == 0
    assert history.current == shade(9)


def test_boundaries_raise_noop(history):
    with pytest.raises(NoOp):
        history.undo()
    with pytest.raises(NoOp):
        history.redo()
    assert history.cursor == 0


def test_capacity_evicts_oldest(history):
    for i in range(1, 26):
        history.commit(shade(i))
    assert len(history) == 20
    assert history.cursor == 19
    assert history.entries[0] == shade(6)
    assert history.current == shade(25)


def test_undo_then_redo_restores(history):
    for i in range(1, 4):
        history.commit(shade(i))
    before = history.current
    history.undo()
    assert history.current == shade(2)
    assert history.redo() == before


def test_commit_after_undo_discards_redo_branch(history):
    history.commit(shade(1))
    history.commit(shade(2))
    history.undo()
    history.commit(shade(7))
    assert len(history) == 3
    assert not history.can_redo
    with pytest.raises(NoOp):
        history.redo()
    assert history.undo() == shade(1)


def test_stored_entries_are_independent_and_read_only(history):
    buf = shade(50)
    history.commit(buf)
    buf.set_pixel(0, 0, (1, 1, 1, 1))
    assert history.current == shade(50)
    assert history.current.is_frozen
    with pytest.raises(ValueError):
        history.current.set_pixel(0, 0, (1, 1, 1, 1))


def test_capacity_from_env(monkeypatch):
    monkeypatch.setenv("HISTORY_CAPACITY", "3")
    h = EditHistory()
    h.seed(shade(0))
    for i in range(1, 6):
        h.commit(shade(i))
    assert len(h) == 3
    assert [e.get_pixel(0, 0)[0] for e in h.entries] == [3, 4, 5]


def test_capacity_must_be_positive():
    with pytest.raises(InvalidParameter):
        EditHistory(capacity=0)


def test_clear_returns_to_empty(history):
    history.clear()
    assert history.is_empty
    with pytest.raises(NoOp):
        history.current
    history.commit(PixelBuffer.create(1, 1))
    assert history.cursor == 0
