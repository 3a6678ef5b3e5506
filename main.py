"""TRPG Log Editor — launcher. Serves the API, or exports one room to a file."""

import argparse
import asyncio
import json
import logging
import os
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "127.0.0.1")
PORT = os.getenv("PORT", "13015")


async def export_room(room_id: str, out: Path | None) -> Path:
    """Fetch a room, apply its stored overlay, and write the export file."""
    from backend import storage
    from backend.sessions import make_fetcher
    from trpg_log.export import export_filename
    from trpg_log.session import RoomSession

    def progress(count: int) -> None:
        print(f"\rLoaded {count} messages...", end="", flush=True)

    session = await RoomSession.open(
        room_id,
        make_fetcher(),
        storage.overlay_store(),
        storage.settings_store(),
        on_progress=progress,
    )
    print()
    export = session.export()
    path = out or Path(export_filename(session.room_id))
    path.write_text(json.dumps(export.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False))
    print(f"Exported {export.displayed_message_count} / {export.original_message_count} messages to {path}")
    return path


def main():
    parser = argparse.ArgumentParser(description="TRPG Log Editor")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data storage directory (default: ./data)")
    parser.add_argument("--export", metavar="ROOM_ID", default=None,
                        help="Export a room with its local edits and exit")
    parser.add_argument("--out", type=Path, default=None,
                        help="Export file path (default: trpg-log-<room>-<date>.json)")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", default=PORT)
    parser.add_argument("--reload", action="store_true", help="Restart the server on code changes")
    args = parser.parse_args()

    if args.export:
        from backend import storage
        from trpg_log.fetcher import FetchError

        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
        storage.init_storage(args.data_dir or ROOT / "data")
        try:
            asyncio.run(export_room(args.export, args.out))
        except (ValueError, FetchError) as e:
            print(f"\nExport failed: {e}", file=sys.stderr)
            sys.exit(1)
        return

    # Build env for the server process so it picks up the same data dir
    env = os.environ.copy()
    if args.data_dir:
        env["DATA_DIR"] = str(args.data_dir.resolve())

    cmd = [sys.executable, "-m", "uvicorn", "backend.app:app", "--host", args.host, "--port", str(args.port)]
    if args.reload:
        cmd.append("--reload")
    print(f"Starting backend on http://{args.host}:{args.port} ...")
    try:
        subprocess.run(cmd, cwd=ROOT, env=env, check=False)
    except KeyboardInterrupt:
        print("\nShutting down...")


if __name__ == "__main__":
    main()
