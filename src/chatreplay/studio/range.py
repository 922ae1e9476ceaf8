"""Serve the replay video with HTTP Range support so the player can seek."""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Iterator, Optional, Tuple

from fastapi import Request
from fastapi.responses import StreamingResponse

_VIDEO_TYPES = {
    ".mp4": "video/mp4",
    ".m4v": "video/mp4",
    ".mov": "video/mp4",
    ".webm": "video/webm",
    ".mkv": "video/x-matroska",
}


def guess_video_type(path: Path) -> str:
    ext = Path(path).suffix.lower()
    if ext in _VIDEO_TYPES:
        return _VIDEO_TYPES[ext]
    guessed, _ = mimetypes.guess_type(str(path))
    return guessed or "application/octet-stream"


def parse_byte_range(header: Optional[str], size: int) -> Optional[Tuple[int, int]]:
    """Parse ``bytes=start-end`` into an inclusive (start, end) pair.

    Only the first range of a multi-range request is honoured. Returns None
    when the header is absent, malformed, or unsatisfiable.
    """
    if not header or not header.startswith("bytes=") or size <= 0:
        return None
    spec = header[len("bytes="):].split(",", 1)[0].strip()
    first, sep, last = spec.partition("-")
    if not sep:
        return None
    first, last = first.strip(), last.strip()

    try:
        if not first:
            # Suffix form: the last N bytes.
            n = min(int(last), size)
            if n <= 0:
                return None
            return size - n, size - 1
        start = max(0, int(first))
        end = size - 1 if not last else min(int(last), size - 1)
    except ValueError:
        return None

    if start > end:
        return None
    return start, end


def _read_chunks(path: Path, start: int, end: int, chunk_size: int = 1024 * 1024) -> Iterator[bytes]:
    with path.open("rb") as f:
        f.seek(start)
        remaining = end - start + 1
        while remaining > 0:
            data = f.read(min(chunk_size, remaining))
            if not data:
                break
            remaining -= len(data)
            yield data


def ranged_video_response(request: Request, path: Path) -> StreamingResponse:
    path = Path(path)
    size = path.stat().st_size
    media_type = guess_video_type(path)
    byte_range = parse_byte_range(request.headers.get("range"), size)

    if byte_range is None:
        return StreamingResponse(
            _read_chunks(path, 0, size - 1),
            status_code=200,
            media_type=media_type,
            headers={"Accept-Ranges": "bytes", "Content-Length": str(size)},
        )

    start, end = byte_range
    return StreamingResponse(
        _read_chunks(path, start, end),
        status_code=206,
        media_type=media_type,
        headers={
            "Accept-Ranges": "bytes",
            "Content-Range": f"bytes {start}-{end}/{size}",
            "Content-Length": str(end - start + 1),
        },
    )
