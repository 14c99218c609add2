"""Tests for the state store and the activity event log."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from skillbridge.persistence.event_log import EventKind, EventLog, EventRecord
from skillbridge.persistence.state_store import StateStore


class TestStateStore:
    def test_save_then_load(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "nested" / "state.json")
        assert not store.exists()
        store.save({"profiles": [{"user_id": "ada"}]})
        assert store.exists()
        assert store.load() == {"profiles": [{"user_id": "ada"}]}

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "state.json")
        store.save({})
        store.save({"skills": []})
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_rejects_unknown_version(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"version": 99, "tables": {}}), encoding="utf-8")
        with pytest.raises(ValueError, match="Unsupported state version"):
            StateStore(path).load()

    def test_rejects_non_object(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(ValueError, match="not a JSON object"):
            StateStore(path).load()


def _event(event_id: str, kind: EventKind = EventKind.PROJECT_CREATED, project_id: str = "p1") -> EventRecord:
    return EventRecord.create(
        event_id=event_id,
        event_kind=kind,
        actor_id="lead",
        payload={"project_id": project_id},
        timestamp_utc=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


class TestEventLog:
    def test_append_and_filter(self) -> None:
        log = EventLog()
        log.append(_event("EVT-1"))
        log.append(_event("EVT-2", EventKind.PROJECT_APPROVED))
        log.append(_event("EVT-3", EventKind.PROJECT_CREATED, "p2"))
        assert log.count == 3
        assert [e.event_id for e in log.events(EventKind.PROJECT_CREATED)] == ["EVT-1", "EVT-3"]
        assert [e.event_id for e in log.events_for_project("p1")] == ["EVT-1", "EVT-2"]
        assert log.last_event.event_id == "EVT-3"

    def test_duplicate_id_rejected(self) -> None:
        log = EventLog()
        log.append(_event("EVT-1"))
        with pytest.raises(ValueError, match="Duplicate event ID"):
            log.append(_event("EVT-1"))

    def test_hash_is_deterministic(self) -> None:
        assert _event("EVT-1").event_hash == _event("EVT-1").event_hash
        assert _event("EVT-1").event_hash.startswith("sha256:")
        assert _event("EVT-1").event_hash != _event("EVT-2").event_hash

    def test_persists_and_reloads(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        log = EventLog(storage_path=path)
        log.append(_event("EVT-1"))
        log.append(_event("EVT-2"))
        reloaded = EventLog(storage_path=path)
        assert reloaded.count == 2
        assert reloaded.last_event.to_dict() == log.last_event.to_dict()

    def test_tampered_record_fails_load(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        EventLog(storage_path=path).append(_event("EVT-1"))
        record = json.loads(path.read_text(encoding="utf-8"))
        record["payload"]["project_id"] = "other"
        path.write_text(json.dumps(record) + "\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Integrity check failed"):
            EventLog(storage_path=path)

    def test_replayed_record_fails_load(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        EventLog(storage_path=path).append(_event("EVT-1"))
        line = path.read_text(encoding="utf-8")
        path.write_text(line + line, encoding="utf-8")
        with pytest.raises(ValueError, match="Duplicate event ID on load"):
            EventLog(storage_path=path)
