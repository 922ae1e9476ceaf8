from __future__ import annotations

import argparse
import json
import logging
import sys
import webbrowser
from pathlib import Path
from typing import List, Optional

from .chat.errors import ChatLogEmptyError, TimestampFormatError
from .chat.parser import load_chat_log
from .chat.styling import superchat_tier
from .chat.timestamp import parse_timestamp
from .chat.window import visible_messages
from .logging_config import setup_logging
from .profile import load_profile

log = logging.getLogger(__name__)


def _timestamp_arg(value: str) -> int:
    try:
        return parse_timestamp(value)
    except TimestampFormatError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def cmd_parse(args: argparse.Namespace) -> None:
    try:
        result = load_chat_log(args.chat)
    except ChatLogEmptyError as exc:
        print(f"{args.chat}: no valid chat messages ({len(exc.warnings)} lines skipped)", file=sys.stderr)
        raise SystemExit(1)

    messages = visible_messages(result.messages, args.at)

    if args.json:
        payload = result.summary()
        payload["messages"] = [m.to_dict() for m in messages]
        payload["warnings"] = [w.to_dict() for w in result.warnings]
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    print(f"Source: {args.chat}")
    print(f"Messages: {len(result.messages)} parsed, {len(result.warnings)} lines skipped")
    if args.at is not None:
        print(f"Visible at {args.at}s: {len(messages)}")
    print()
    print(f"{'Time':>9}  {'Author':<24}  Message")
    for m in messages:
        extra = ""
        if m.superchat is not None:
            extra = f" [{m.superchat.amount} {superchat_tier(m.superchat.amount).name}]"
        role = f" ({m.role})" if m.role else ""
        print(f"{m.timestamp_text:>9}  {(m.username + role)[:24]:<24}  {m.message}{extra}")


def cmd_studio(args: argparse.Namespace) -> None:
    from .studio.app import create_app

    profile = load_profile(args.profile)
    studio_cfg = profile.get("studio", {})
    host = args.host or str(studio_cfg.get("host", "127.0.0.1"))
    port = args.port or int(studio_cfg.get("port", 8766))

    app = create_app(video_path=args.video, chat_path=args.chat, profile_path=args.profile)

    url = f"http://{host}:{port}"
    if not args.no_open:
        try:
            webbrowser.open(url)
        except webbrowser.Error as exc:
            log.warning("could not open browser: %s", exc)

    import uvicorn

    uvicorn.run(app, host=host, port=port, log_level="warning")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="chatreplay", description="Replay a video with its live chat log")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write a full debug log to this file")
    sub = parser.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("studio", help="Launch the local replay studio web app.")
    s.add_argument("video", type=Path, nargs="?", default=None, help="Video file to open (optional)")
    s.add_argument("--chat", type=Path, default=None, help="Chat replay log (.jsonl/.txt) to load at startup")
    s.add_argument("--profile", type=Path, default=None, help="Path to a YAML profile")
    s.add_argument("--host", type=str, default=None)
    s.add_argument("--port", type=int, default=None)
    s.add_argument("--no-open", action="store_true", help="Do not open a browser automatically")
    s.set_defaults(func=cmd_studio)

    p = sub.add_parser("parse", help="Parse a chat replay log and print its messages.")
    p.add_argument("chat", type=Path)
    p.add_argument("--at", type=_timestamp_arg, default=None, help="Only messages visible at this time ([h:]mm:ss)")
    p.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    p.set_defaults(func=cmd_parse)

    args = parser.parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.WARNING, log_file=args.log_file)
    args.func(args)


if __name__ == "__main__":
    main()
