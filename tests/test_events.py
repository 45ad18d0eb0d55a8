from datetime import datetime, timedelta, timezone

import pytest

from statebind.state.events import EventType, TransitionLog, create_transition_log


@pytest.fixture
def log(tmp_path):
    return TransitionLog(tmp_path / "history" / "transitions.jsonl")


def test_append_and_read(log):
    log.append(EventType.STATE_WRITTEN, "Order", record_id="1", from_state="pending", to_state="paid")
    log.append("state_staged", "Order", record_id="2", to_state="paid")

    events = log.read_all()

    assert [e.event_type for e in events] == ["state_written", "state_staged"]
    assert events[0].from_state == "pending"
    assert events[1].from_state is None


def test_missing_file_reads_empty(log):
    assert log.read_all() == []


def test_corrupted_lines_are_skipped(log):
    log.append(EventType.STATE_WRITTEN, "Order", record_id="1", to_state="paid")
    with open(log.log_path, "a", encoding="utf-8") as f:
        f.write('{"event_type": "state_wri\n')
        f.write('{"unexpected": 1}\n')
    log.append(EventType.STATE_WRITTEN, "Order", record_id="1", to_state="shipped")

    assert [e.to_state for e in log.read_all()] == ["paid", "shipped"]


def test_find_events(log):
    log.append(EventType.STATE_WRITTEN, "Order", record_id="1", to_state="paid")
    log.append(EventType.STATE_WRITE_FAILED, "Order", record_id="2", to_state="paid")
    log.append(EventType.STATE_WRITTEN, "Invoice", record_id="1", to_state="sent")

    assert len(log.find_events(event_type=EventType.STATE_WRITTEN)) == 2
    assert [e.to_state for e in log.find_events(record_type="Invoice")] == ["sent"]
    assert len(log.find_events(record_type="Order", record_id=1)) == 1


def test_find_events_since(log):
    log.append(EventType.STATE_WRITTEN, "Order", record_id="1", to_state="paid")

    past = datetime.now(timezone.utc) - timedelta(minutes=5)
    future = datetime.now(timezone.utc) + timedelta(minutes=5)

    assert len(log.find_events(since=past)) == 1
    assert log.find_events(since=future) == []
    assert len(log.find_events(since=past.replace(tzinfo=None))) == 1


def test_read_last_n(log):
    for state in ("a", "b", "c"):
        log.append(EventType.STATE_WRITTEN, "Order", to_state=state)

    assert [e.to_state for e in log.read_last_n(2)] == ["b", "c"]
    assert [e.to_state for e in log.read_last_n(10)] == ["a", "b", "c"]
    assert log.read_last_n(0) == []


def test_create_from_config(tmp_path):
    log = create_transition_log({"paths": {"state_dir": str(tmp_path / "state")}})

    assert log.log_path == tmp_path / "state" / "transitions.jsonl"
    assert log.log_path.parent.is_dir()


def test_read_last_n_with_criteria(log):
    log.append(EventType.STATE_WRITTEN, "Order", record_id="1", to_state="paid")
    log.append(EventType.STATE_WRITTEN, "Invoice", record_id="1", to_state="sent")
    log.append(EventType.STATE_WRITTEN, "Order", record_id="2", to_state="shipped")
    log.append(EventType.STATE_WRITTEN, "Invoice", record_id="2", to_state="void")

    assert [e.to_state for e in log.read_last_n(1, record_type="Order")] == ["shipped"]
    assert log.read_last_n(0, record_type="Order") == []
