from __future__ import annotations

import json
import logging
import queue
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles

from ..profile import load_profile
from ..session import ReplaySession, event_from_dict
from .jobs import JOB_MANAGER
from .range import ranged_video_response

log = logging.getLogger(__name__)


class StudioContext:
    """Holds the replay session and the currently opened video."""

    def __init__(
        self,
        video_path: Optional[Path] = None,
        profile_path: Optional[Path] = None,
    ):
        self.profile = load_profile(profile_path)
        self.session = ReplaySession(self.profile)
        self._video_path: Optional[Path] = None
        if video_path is not None:
            self.open_video(video_path)

    @property
    def video_path(self) -> Optional[Path]:
        return self._video_path

    @property
    def chat_extensions(self) -> tuple:
        return tuple(self.profile.get("chat", {}).get("extensions", (".jsonl", ".txt")))

    def open_video(self, video_path: Path) -> Path:
        video_path = Path(video_path)
        if not video_path.is_file():
            raise HTTPException(status_code=404, detail="video_not_found")
        self._video_path = video_path
        log.info("opened video %s", video_path)
        return video_path

    def require_video(self) -> Path:
        if self._video_path is None:
            raise HTTPException(status_code=400, detail="no_video")
        return self._video_path


def create_app(
    *,
    video_path: Optional[Path] = None,
    chat_path: Optional[Path] = None,
    profile_path: Optional[Path] = None,
) -> FastAPI:
    ctx = StudioContext(video_path=video_path, profile_path=profile_path)
    session = ctx.session

    app = FastAPI(title="chatreplay Studio")
    app.state.ctx = ctx

    if chat_path is not None:
        JOB_MANAGER.start_chat_load_file(session, Path(chat_path), extensions=ctx.chat_extensions)

    def state_payload(effects=()) -> Dict[str, Any]:
        return {
            "effects": [e.to_dict() for e in effects],
            "state": session.snapshot(),
        }

    static_dir = Path(__file__).parent / "static"
    app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    @app.get("/")
    def index() -> FileResponse:
        return FileResponse(str(static_dir / "index.html"))

    @app.get("/api/health")
    def api_health() -> JSONResponse:
        return JSONResponse({"ok": True})

    @app.get("/api/config")
    def api_config() -> JSONResponse:
        chat_cfg = ctx.profile.get("chat", {})
        return JSONResponse({
            "scroll_threshold_px": chat_cfg.get("scroll_threshold_px", 50),
            "composer_name": session.composer_name,
            "chat_extensions": list(ctx.chat_extensions),
            "seek_step_seconds": session.clock.seek_step_seconds,
            "superchat_tiers": [t.to_dict() for t in session.tiers],
            "video_open": ctx.video_path is not None,
        })

    @app.post("/api/video/open")
    def api_video_open(body: Dict[str, Any] = Body(...)):  # type: ignore[valid-type]
        raw = str(body.get("path") or "").strip()
        if not raw:
            raise HTTPException(status_code=400, detail="path_required")
        path = ctx.open_video(Path(raw))
        return JSONResponse({"ok": True, "video_path": str(path)})

    @app.get("/video")
    async def video(request: Request):
        return ranged_video_response(request, ctx.require_video())

    @app.post("/api/chat/load")
    def api_chat_load(body: Dict[str, Any] = Body(...)):  # type: ignore[valid-type]
        """Start parsing a chat log file on disk.

        Body:
            path: str - Path to a .jsonl/.txt chat replay log
        """
        raw = str(body.get("path") or "").strip()
        if not raw:
            raise HTTPException(status_code=400, detail="path_required")
        path = Path(raw)
        if not path.is_file():
            raise HTTPException(status_code=404, detail="chat_not_found")
        job = JOB_MANAGER.start_chat_load_file(session, path, extensions=ctx.chat_extensions)
        return JSONResponse({"job_id": job.id})

    @app.post("/api/chat/upload")
    async def api_chat_upload(request: Request, filename: str = ""):
        """Start parsing a chat log sent as the raw request body."""
        data = await request.body()
        if not data.strip():
            raise HTTPException(status_code=400, detail="empty_upload")
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            raise HTTPException(status_code=400, detail="invalid_encoding")
        job = JOB_MANAGER.start_chat_load_text(session, text, source=filename)
        return JSONResponse({"job_id": job.id})

    @app.get("/api/chat/messages")
    def api_chat_messages(visible_only: bool = True, limit: int = 0) -> JSONResponse:
        """Messages for the chat panel.

        Query params:
            visible_only: Only messages playback has reached (default true)
            limit: Return only the newest N messages (0 = all)

        Events still queued (a finished load, say) are applied first and their
        effects returned alongside.
        """
        effects = session.drain()
        messages = session.visible_messages() if visible_only else list(session.messages)
        if limit > 0:
            messages = messages[-limit:]
        payload = state_payload(effects)
        payload["messages"] = [m.to_dict(session.tiers) for m in messages]
        return JSONResponse(payload)

    @app.post("/api/chat/compose")
    def api_chat_compose(body: Dict[str, Any] = Body(...)):  # type: ignore[valid-type]
        try:
            effects = session.compose(str(body.get("text") or ""))
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        return JSONResponse(state_payload(effects))

    @app.post("/api/session/events")
    def api_session_events(body: Dict[str, Any] = Body(...)):  # type: ignore[valid-type]
        """Deliver one client event (time_update, seeked, duration, scroll, key, jump_to_latest)."""
        try:
            event = event_from_dict(body)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        return JSONResponse(state_payload(session.dispatch(event)))

    @app.get("/api/session/state")
    def api_session_state() -> JSONResponse:
        return JSONResponse(state_payload(session.drain()))

    @app.get("/api/jobs/{job_id}")
    def api_job(job_id: str):
        job = JOB_MANAGER.get(job_id)
        if not job:
            raise HTTPException(status_code=404, detail="job_not_found")
        return JSONResponse(job.to_dict())

    @app.get("/api/jobs/{job_id}/events")
    def api_job_events(job_id: str):
        job = JOB_MANAGER.get(job_id)
        if not job:
            raise HTTPException(status_code=404, detail="job_not_found")

        def event_stream():
            # Initial snapshot
            yield f"data: {json.dumps({'type': 'job_update', 'job': job.to_dict()})}\n\n"
            while not (job.done.is_set() and job.events.empty()):
                try:
                    payload = job.events.get(timeout=15)
                    yield f"data: {payload}\n\n"
                except queue.Empty:
                    yield ": keep-alive\n\n"

        return StreamingResponse(event_stream(), media_type="text/event-stream")

    return app
