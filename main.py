"""Wayfarer — dev launcher. Lints a content bundle or starts the API server."""

import argparse
import logging
import os
import signal
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = os.getenv("PORT", "13015")


def lint(content: Path) -> int:
    from wayfarer.content import lint_bundle, load_bundle
    from wayfarer.errors import ContentError

    try:
        bundle = load_bundle(content)
    except ContentError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    problems = lint_bundle(bundle)
    for problem in problems:
        print(problem)
    print(f"{content}: {len(bundle.scenes)} scenes, {len(bundle.dialogs)} dialog nodes, "
          f"{len(problems)} problem(s)")
    return 1 if problems else 0


def main():
    parser = argparse.ArgumentParser(description="Wayfarer dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data storage directory (default: ./data)")
    parser.add_argument("--content", type=Path, default=None,
                        help="Content bundle to play (default: presets/voyage.json)")
    parser.add_argument("--lint", action="store_true",
                        help="Check the content bundle for authoring problems and exit")
    parser.add_argument("--port", default=PORT, help=f"API port (default: {PORT})")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.lint:
        sys.exit(lint(args.content or ROOT / "presets" / "voyage.json"))

    # Build env for the server process so it picks up the same settings
    env = os.environ.copy()
    if args.data_dir:
        env["WAYFARER_DATA_DIR"] = str(args.data_dir.resolve())
    if args.content:
        env["WAYFARER_CONTENT_PATH"] = str(args.content.resolve())

    proc = subprocess.Popen(
        ["uvicorn", "wayfarer.api.app:create_app", "--factory", "--reload",
         "--host", HOST, "--port", str(args.port)],
        cwd=ROOT, env=env,
    )

    def shutdown(*_):
        print("\nShutting down...")
        proc.terminate()
        proc.wait()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    print(f"Starting API on http://localhost:{args.port} ...")
    proc.wait()


if __name__ == "__main__":
    main()
