from __future__ import annotations

import json
import logging
import queue
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..chat.errors import ChatLogEmptyError
from ..chat.parser import ChatLogResult, load_chat_log, parse_chat_log
from ..session import LogFailed, LogLoaded, ReplaySession
from ..utils import utc_iso

log = logging.getLogger(__name__)


@dataclass
class Job:
    id: str
    kind: str
    created_at: str = field(default_factory=utc_iso)
    status: str = "queued"  # queued|running|succeeded|failed
    progress: float = 0.0
    message: str = ""
    result: Dict[str, Any] = field(default_factory=dict)

    # SSE event stream
    events: "queue.Queue[str]" = field(default_factory=lambda: queue.Queue(maxsize=1000))
    done: threading.Event = field(default_factory=threading.Event)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "created_at": self.created_at,
            "status": self.status,
            "progress": self.progress,
            "message": self.message,
            "result": self.result,
        }


class JobManager:
    def __init__(self, keep_finished: int = 20) -> None:
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()
        self.keep_finished = keep_finished

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def create(self, kind: str) -> Job:
        job = Job(id=uuid.uuid4().hex, kind=kind)
        with self._lock:
            self._prune_locked()
            self._jobs[job.id] = job
        self._emit(job, {"type": "job_created", "job": job.to_dict()})
        return job

    def _prune_locked(self) -> None:
        """Forget the oldest finished jobs beyond ``keep_finished``; running jobs stay."""
        finished = [job_id for job_id, job in self._jobs.items() if job.done.is_set()]
        for job_id in finished[: max(0, len(finished) - self.keep_finished)]:
            del self._jobs[job_id]

    def _emit(self, job: Job, payload: Dict[str, Any]) -> None:
        try:
            job.events.put_nowait(json.dumps(payload))
        except queue.Full:
            # Drop if client is slow; next update will catch up.
            pass

    def _set(
        self,
        job: Job,
        *,
        status: Optional[str] = None,
        progress: Optional[float] = None,
        message: Optional[str] = None,
        result: Optional[Dict[str, Any]] = None,
    ) -> None:
        if status is not None:
            job.status = status
        if progress is not None:
            job.progress = max(0.0, min(1.0, float(progress)))
        if message is not None:
            job.message = message
        if result is not None:
            job.result = result
        self._emit(job, {"type": "job_update", "job": job.to_dict()})

    def _start_chat_job(self, session: ReplaySession, source: str, parse: Callable[[], ChatLogResult]) -> Job:
        job = self.create("chat_load")

        def runner() -> None:
            self._set(job, status="running", progress=0.0, message=f"parsing {source}")
            try:
                result = parse()
            except ChatLogEmptyError as exc:
                session.post(LogFailed(error=str(exc), source=source))
                self._set(
                    job,
                    status="failed",
                    progress=1.0,
                    message=str(exc),
                    result={"source": source, "skipped_count": len(exc.warnings)},
                )
            except (OSError, UnicodeDecodeError) as exc:
                session.post(LogFailed(error=f"read_failed: {exc}", source=source))
                self._set(job, status="failed", progress=1.0, message=f"read_failed: {exc}", result={"source": source})
            else:
                session.post(LogLoaded(result))
                summary = result.summary()
                summary["warnings"] = [w.to_dict() for w in result.warnings[:50]]
                self._set(job, status="succeeded", progress=1.0, message="done", result=summary)
            finally:
                job.done.set()

        threading.Thread(target=runner, name=f"chat-load-{job.id[:8]}", daemon=True).start()
        return job

    def start_chat_load_file(self, session: ReplaySession, path: Path, *, extensions: Optional[tuple] = None) -> Job:
        path = Path(path)
        return self._start_chat_job(session, path.name, lambda: load_chat_log(path, extensions=extensions))

    def start_chat_load_text(self, session: ReplaySession, text: str, *, source: str = "") -> Job:
        return self._start_chat_job(session, source or "upload", lambda: parse_chat_log(text, source=source))


JOB_MANAGER = JobManager()
