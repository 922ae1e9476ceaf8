from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient


@pytest.fixture(autouse=True)
def _reset_job_manager():
    from chatreplay.studio.jobs import JOB_MANAGER

    with JOB_MANAGER._lock:  # type: ignore[attr-defined]
        JOB_MANAGER._jobs.clear()  # type: ignore[attr-defined]
    yield
    with JOB_MANAGER._lock:  # type: ignore[attr-defined]
        JOB_MANAGER._jobs.clear()  # type: ignore[attr-defined]


def _make_client(tmp_path: Path, monkeypatch, **kwargs) -> TestClient:
    monkeypatch.chdir(tmp_path)
    from chatreplay.studio.app import create_app

    return TestClient(create_app(**kwargs))


def _wait_job(client: TestClient, job_id: str) -> dict:
    from chatreplay.studio.jobs import JOB_MANAGER

    job = JOB_MANAGER.get(job_id)
    assert job is not None
    assert job.done.wait(timeout=10)
    r = client.get(f"/api/jobs/{job_id}")
    assert r.status_code == 200
    return r.json()


def _write_log(tmp_path: Path, make_record, make_log, name: str = "live_chat.jsonl") -> Path:
    path = tmp_path / name
    path.write_text(
        make_log(
            make_record("second", "Bob", "0:20", amount="¥12,000"),
            make_record("first", "Alice", "0:05", badges=["Moderator"]),
            "not json",
            make_record("third", "Carol", "1:00"),
        ),
        encoding="utf-8",
    )
    return path


def test_health(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_config(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    data = client.get("/api/config").json()
    assert data["scroll_threshold_px"] == 50
    assert data["seek_step_seconds"] == 5
    assert data["chat_extensions"] == [".jsonl", ".txt"]
    assert data["superchat_tiers"][0]["name"] == "red"


def test_load_chat_and_follow_playback(tmp_path, monkeypatch, make_record, make_log):
    client = _make_client(tmp_path, monkeypatch)
    path = _write_log(tmp_path, make_record, make_log)

    r = client.post("/api/chat/load", json={"path": str(path)})
    assert r.status_code == 200
    job = _wait_job(client, r.json()["job_id"])
    assert job["status"] == "succeeded"
    assert job["result"]["message_count"] == 3
    assert job["result"]["skipped_count"] == 1
    assert job["result"]["warnings"][0]["line_no"] == 3

    r = client.get("/api/session/state")
    body = r.json()
    assert body["effects"] == [{"type": "scroll_to_bottom"}]
    assert body["state"]["total_count"] == 3
    assert body["state"]["visible_count"] == 3

    r = client.post("/api/session/events", json={"type": "time_update", "position": 21.7})
    assert r.status_code == 200
    assert r.json()["state"]["position_sec"] == 21
    assert r.json()["state"]["visible_count"] == 2

    msgs = client.get("/api/chat/messages").json()["messages"]
    assert [m["message"] for m in msgs] == ["first", "second"]
    assert msgs[0]["role"] == "moderator"
    assert msgs[1]["superchat"]["tier"]["name"] == "magenta"
    assert msgs[1]["avatar_initial"] == "B"

    all_msgs = client.get("/api/chat/messages", params={"visible_only": False, "limit": 1}).json()["messages"]
    assert [m["message"] for m in all_msgs] == ["third"]


def test_scroll_and_seek_events(tmp_path, monkeypatch, make_record, make_log):
    client = _make_client(tmp_path, monkeypatch)
    path = _write_log(tmp_path, make_record, make_log)
    _wait_job(client, client.post("/api/chat/load", json={"path": str(path)}).json()["job_id"])
    client.get("/api/session/state")

    r = client.post(
        "/api/session/events",
        json={"type": "scroll", "scroll_top": 0, "scroll_height": 900, "client_height": 300},
    )
    state = r.json()["state"]
    assert state["mode"] == "manual"
    assert state["show_jump_to_latest"] is True

    r = client.post("/api/session/events", json={"type": "seeked", "position": 6})
    assert r.json()["effects"] == [{"type": "scroll_to_bottom"}]
    assert r.json()["state"]["mode"] == "auto_follow"
    assert r.json()["state"]["visible_count"] == 1

    client.post("/api/session/events", json={"type": "duration", "duration": 8})
    r = client.post("/api/session/events", json={"type": "key", "key": "ArrowRight"})
    assert r.json()["effects"][0] == {"type": "seek_to", "position": 8.0}


def test_bad_event_rejected(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    r = client.post("/api/session/events", json={"type": "warp"})
    assert r.status_code == 400
    r = client.post("/api/session/events", json={"type": "time_update"})
    assert r.status_code == 400


def test_empty_log_fails_and_keeps_messages(tmp_path, monkeypatch, make_record, make_log):
    client = _make_client(tmp_path, monkeypatch)
    good = _write_log(tmp_path, make_record, make_log)
    _wait_job(client, client.post("/api/chat/load", json={"path": str(good)}).json()["job_id"])

    bad = tmp_path / "other.txt"
    bad.write_text('{"hello": "world"}\n\n', encoding="utf-8")
    job = _wait_job(client, client.post("/api/chat/load", json={"path": str(bad)}).json()["job_id"])
    assert job["status"] == "failed"
    assert job["message"] == "no_valid_messages"

    state = client.get("/api/session/state").json()["state"]
    assert state["total_count"] == 3
    assert state["source"] == "live_chat.jsonl"
    assert state["last_error"] == "no_valid_messages"


def test_load_missing_file(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    r = client.post("/api/chat/load", json={"path": str(tmp_path / "missing.jsonl")})
    assert r.status_code == 404
    assert r.json()["detail"] == "chat_not_found"
    assert client.post("/api/chat/load", json={}).status_code == 400


def test_upload_raw_body(tmp_path, monkeypatch, make_record, make_log):
    client = _make_client(tmp_path, monkeypatch)
    text = make_log(make_record("hi", "Dana", "0:01"))
    r = client.post("/api/chat/upload", params={"filename": "up.jsonl"}, content=text.encode("utf-8"))
    assert r.status_code == 200
    job = _wait_job(client, r.json()["job_id"])
    assert job["status"] == "succeeded"
    assert job["result"]["source"] == "up.jsonl"

    r = client.post("/api/chat/upload", content=b"   \n")
    assert r.status_code == 400
    assert r.json()["detail"] == "empty_upload"

    r = client.post("/api/chat/upload", content=b"\xff\xfe\x00bad")
    assert r.status_code == 400
    assert r.json()["detail"] == "invalid_encoding"


def test_chat_path_loaded_at_startup(tmp_path, monkeypatch, make_record, make_log):
    path = _write_log(tmp_path, make_record, make_log)
    client = _make_client(tmp_path, monkeypatch, chat_path=path)

    from chatreplay.studio.jobs import JOB_MANAGER

    for job in list(JOB_MANAGER._jobs.values()):  # type: ignore[attr-defined]
        assert job.done.wait(timeout=10)
    assert client.get("/api/session/state").json()["state"]["total_count"] == 3


def test_compose(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    client.post("/api/session/events", json={"type": "time_update", "position": 75})
    r = client.post("/api/chat/compose", json={"text": "hello"})
    assert r.status_code == 200
    assert r.json()["state"]["total_count"] == 1

    msgs = client.get("/api/chat/messages").json()["messages"]
    assert msgs[0]["username"] == "You"
    assert msgs[0]["timestamp_text"] == "01:15"

    r = client.post("/api/chat/compose", json={"text": " "})
    assert r.status_code == 400
    assert r.json()["detail"] == "empty_message"


def test_video_requires_open(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    r = client.get("/video")
    assert r.status_code == 400
    assert r.json()["detail"] == "no_video"

    r = client.post("/api/video/open", json={"path": str(tmp_path / "none.mp4")})
    assert r.status_code == 404


def test_video_range_request(tmp_path, monkeypatch):
    video = tmp_path / "stream.mp4"
    video.write_bytes(bytes(range(256)) * 4)
    client = _make_client(tmp_path, monkeypatch, video_path=video)

    r = client.get("/video", headers={"Range": "bytes=10-19"})
    assert r.status_code == 206
    assert r.content == bytes(range(10, 20))
    assert r.headers["content-range"] == "bytes 10-19/1024"
    assert r.headers["content-type"].startswith("video/mp4")

    r = client.get("/video")
    assert r.status_code == 200
    assert len(r.content) == 1024


def test_job_not_found(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    assert client.get("/api/jobs/nope").status_code == 404
    assert client.get("/api/jobs/nope/events").status_code == 404


def test_job_events_stream_ends(tmp_path, monkeypatch, make_record, make_log):
    client = _make_client(tmp_path, monkeypatch)
    path = _write_log(tmp_path, make_record, make_log)
    job_id = client.post("/api/chat/load", json={"path": str(path)}).json()["job_id"]
    _wait_job(client, job_id)

    r = client.get(f"/api/jobs/{job_id}/events")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/event-stream")
    assert '"status": "succeeded"' in r.text


def test_index_page_served(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    r = client.get("/")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    assert "/static/app.js" in r.text
    assert client.get("/static/app.js").status_code == 200


def test_messages_fetch_delivers_load_scroll(tmp_path, monkeypatch, make_record, make_log):
    client = _make_client(tmp_path, monkeypatch)
    path = _write_log(tmp_path, make_record, make_log)
    _wait_job(client, client.post("/api/chat/load", json={"path": str(path)}).json()["job_id"])

    body = client.get("/api/chat/messages").json()
    assert body["effects"] == [{"type": "scroll_to_bottom"}]
    assert len(body["messages"]) == 3
    assert client.get("/api/session/state").json()["effects"] == []


def test_compose_delivers_pending_load_scroll(tmp_path, monkeypatch, make_record, make_log):
    client = _make_client(tmp_path, monkeypatch)
    path = _write_log(tmp_path, make_record, make_log)
    _wait_job(client, client.post("/api/chat/load", json={"path": str(path)}).json()["job_id"])

    r = client.post("/api/chat/compose", json={"text": "hi"})
    assert {"type": "scroll_to_bottom"} in r.json()["effects"]
    assert r.json()["state"]["total_count"] == 4


@pytest.mark.parametrize(
    "raw",
    [
        '{"type": "time_update", "position": NaN}',
        '{"type": "seeked", "position": Infinity}',
    ],
)
def test_non_finite_positions_rejected(tmp_path, monkeypatch, raw):
    client = _make_client(tmp_path, monkeypatch)
    r = client.post("/api/session/events", content=raw, headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert client.get("/api/session/state").json()["state"]["position_sec"] is None


def test_finished_jobs_are_evicted():
    from chatreplay.studio.jobs import JobManager

    manager = JobManager(keep_finished=2)
    running = manager.create("chat_load")
    old = [manager.create("chat_load") for _ in range(3)]
    for job in old:
        job.done.set()

    newest = manager.create("chat_load")
    assert manager.get(old[0].id) is None
    assert manager.get(old[1].id) is not None
    assert manager.get(old[2].id) is not None
    assert manager.get(running.id) is running
    assert manager.get(newest.id) is newest
