"""
Transition Log
==============

Append-only audit trail of state writes, one JSON object per line:
- Appending never rewrites earlier lines
- A partially written or corrupted line is skipped on read
- Human-readable for debugging

Location (default): {state_dir}/transitions.jsonl
"""

import json
import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional

from filelock import FileLock

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Kinds of state write recorded in the log"""
    STATE_STAGED = "state_staged"
    STATE_WRITTEN = "state_written"
    STATE_WRITE_FAILED = "state_write_failed"
    INITIAL_STATE_MATERIALIZED = "initial_state_materialized"


@dataclass
class TransitionEvent:
    """A single entry in the log"""
    event_type: str
    timestamp: str
    record_type: str
    record_id: Optional[str] = None
    property: Optional[str] = None
    from_state: Optional[str] = None
    to_state: Optional[str] = None
    message: Optional[str] = None


class TransitionLog:
    """JSONL log of state writes, safe for concurrent appenders"""

    def __init__(self, log_path: str | Path):
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = FileLock(str(self.log_path) + ".lock")

    def append(
        self,
        event_type: str | EventType,
        record_type: str,
        record_id: Optional[str] = None,
        property: Optional[str] = None,
        from_state: Optional[str] = None,
        to_state: Optional[str] = None,
        message: Optional[str] = None,
    ) -> TransitionEvent:
        """Append an event and fsync it before returning"""
        event = TransitionEvent(
            event_type=str(event_type.value if isinstance(event_type, EventType) else event_type),
            timestamp=datetime.now(timezone.utc).isoformat(),
            record_type=record_type,
            record_id=record_id,
            property=property,
            from_state=from_state,
            to_state=to_state,
            message=message,
        )

        # Drop None values for compactness
        event_dict = {k: v for k, v in asdict(event).items() if v is not None}

        with self._lock:
            with open(self.log_path, 'a', encoding='utf-8') as f:
                f.write(json.dumps(event_dict) + '\n')
                f.flush()
                os.fsync(f.fileno())

        return event

    def iterate(self) -> Iterator[TransitionEvent]:
        if not self.log_path.exists():
            return

        with open(self.log_path, 'r', encoding='utf-8') as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield TransitionEvent(**json.loads(line))
                except (json.JSONDecodeError, TypeError) as e:
                    logger.warning("Corrupted event at %s:%d: %s", self.log_path, line_num, e)

    def read_all(self) -> list[TransitionEvent]:
        return list(self.iterate())

    def read_last_n(self, n: int, **criteria) -> list[TransitionEvent]:
        """Last ``n`` events, optionally filtered as in find_events"""
        events = self.find_events(**criteria) if criteria else self.read_all()
        return events[-n:] if n > 0 else []

    def find_events(
        self,
        event_type: Optional[str | EventType] = None,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> list[TransitionEvent]:
        """Events matching every given criterion, oldest first"""
        event_type_str = None
        if event_type:
            event_type_str = str(event_type.value if isinstance(event_type, EventType) else event_type)
        if since is not None and since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)

        results = []
        for event in self.iterate():
            if event_type_str and event.event_type != event_type_str:
                continue
            if record_type and event.record_type != record_type:
                continue
            if record_id is not None and event.record_id != str(record_id):
                continue
            if since and datetime.fromisoformat(event.timestamp) < since:
                continue
            results.append(event)
        return results


def create_transition_log(config: dict) -> TransitionLog:
    """Create the transition log from config"""
    state_dir = config.get("paths", {}).get("state_dir", "./state")
    return TransitionLog(Path(state_dir) / "transitions.jsonl")
