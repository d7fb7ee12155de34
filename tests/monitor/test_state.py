from unittest.mock import MagicMock

from birdwatch.monitor.state import IndexFile, WatchPhase, WatchState


def make_state():
    return WatchState('/mail/Inbox.msf', MagicMock())


def index_file(unread):
    return IndexFile('/mail/Inbox.msf', 1.0, MagicMock(), unread)


def test_new_state():
    state = make_state()
    assert state.phase == WatchPhase.IDLE
    assert state.unread is None
    assert state.reported == 0
    assert state.ignored == 0
    assert state.warning is None
    assert state.disabled is False


def test_update_replaces_index_file():
    state = make_state()
    first = index_file(3)
    second = index_file(5)
    state.update(first)
    assert state.index_file is first
    state.update(second)
    assert state.index_file is second
    assert state.unread == 5
    assert state.reported == 5


def test_baseline_subtracted():
    state = make_state()
    state.update(index_file(10))
    state.ignore_current()
    assert state.ignored == 10
    assert state.reported == 0
    state.update(index_file(11))
    assert state.reported == 1
    state.update(index_file(11))
    assert state.reported == 1


def test_baseline_follows_count_down():
    state = make_state()
    state.update(index_file(10))
    state.ignore_current()
    state.update(index_file(7))
    assert state.ignored == 7
    assert state.reported == 0
    state.update(index_file(9))
    assert state.reported == 2


def test_update_ignore_all():
    state = make_state()
    state.update(index_file(4), ignore_all=True)
    assert state.ignored == 4
    assert state.reported == 0


def test_reported_never_negative():
    state = make_state()
    state.update(index_file(2))
    state.ignored = 5
    assert state.reported == 0


def test_ignore_current_before_first_read():
    state = make_state()
    state.ignore_current()
    assert state.ignored == 0


def test_set_phase():
    state = make_state()
    state.set_phase(WatchPhase.PENDING)
    assert state.phase == WatchPhase.PENDING
    state.set_phase(WatchPhase.PARSING)
    assert state.phase == WatchPhase.PARSING
