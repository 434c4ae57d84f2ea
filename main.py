"""Story Engine dev launcher. Starts the API server, or the embedding worker alone."""

import argparse
import asyncio
import os
import signal
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
BACKEND_PORT = os.getenv("BACKEND_PORT", "13013")


async def _run_worker() -> None:
    from story_engine import config
    from story_engine.embeddings import EmbeddingService
    from story_engine.llm import OllamaClient
    from story_engine.worker import EmbeddingWorker

    worker = EmbeddingWorker(
        EmbeddingService(OllamaClient.from_env()),
        poll_interval=config.worker_poll_interval(),
    )
    worker.start()
    worker.install_signal_handlers()
    while worker.is_running:
        await asyncio.sleep(0.5)


def main():
    parser = argparse.ArgumentParser(description="Story Engine dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data storage directory (default: ./data)")
    parser.add_argument("--demo", action="store_true",
                        help="Clean and create demo user data")
    parser.add_argument("--worker", action="store_true",
                        help="Run only the embedding worker (no web server)")
    args = parser.parse_args()

    if args.demo or args.data_dir or args.worker:
        from story_engine import storage
        data_dir = args.data_dir or Path(os.getenv("DATA_DIR", "data"))
        storage.init_storage(data_dir)
        if args.demo:
            from story_engine.demo import create_demo_data
            create_demo_data()

    if args.worker:
        print("Starting embedding worker ...")
        asyncio.run(_run_worker())
        return

    # Build env for the subprocess so the server picks up the same data dir
    env = os.environ.copy()
    if args.data_dir:
        env["DATA_DIR"] = str(args.data_dir.resolve())

    procs: list[subprocess.Popen] = []

    def shutdown(*_):
        print("\nShutting down...")
        for p in procs:
            p.terminate()
        for p in procs:
            p.wait()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    print(f"Starting backend on http://localhost:{BACKEND_PORT} ...")
    procs.append(subprocess.Popen(
        [sys.executable, "-m", "uvicorn", "story_engine.app:app", "--reload",
         "--host", HOST, "--port", BACKEND_PORT],
        cwd=ROOT, env=env,
    ))

    for p in procs:
        p.wait()


if __name__ == "__main__":
    main()
