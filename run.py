#!/usr/bin/env python3
"""
SpeakQuest - Development Launcher

Usage:
    python run.py                    # Backend on localhost:8000 with auto-reload
    python run.py --host 0.0.0.0     # Network accessible (other devices can connect)
    python run.py --no-reload        # Single process, no file watching
    python run.py --check-only       # Check configuration without starting

Environment Variables:
    - OPENAI_API_KEY: Required for the remote transcription provider (warning only)
    - PROGRESS_BACKEND: memory, file (default) or redis
    - REDIS_URL: Defaults to redis://localhost:6379/0
"""

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent
BACKEND_DIR = ROOT / "backend"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_BACKEND_PORT = 8000


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        description='SpeakQuest - Development Launcher',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py                    # Start backend (localhost only)
  python run.py --host 0.0.0.0     # Start on all interfaces
  python run.py --port 9000        # Use another port
  python run.py --check-only       # Run checks without starting
        """
    )
    parser.add_argument(
        '--host',
        default=DEFAULT_HOST,
        help=f'Interface to bind (default: {DEFAULT_HOST})'
    )
    parser.add_argument(
        '--port',
        type=int,
        default=DEFAULT_BACKEND_PORT,
        help=f'Backend port (default: {DEFAULT_BACKEND_PORT})'
    )
    parser.add_argument(
        '--no-reload',
        action='store_true',
        help='Disable auto-reload on code changes'
    )
    parser.add_argument(
        '--ssl-cert',
        help='Path to SSL certificate (enables HTTPS together with --ssl-key)'
    )
    parser.add_argument(
        '--ssl-key',
        help='Path to SSL private key'
    )
    parser.add_argument(
        '--check-only',
        action='store_true',
        help='Validate configuration and exit'
    )
    return parser


def check_configuration() -> bool:
    """Load settings and report anything that will degrade the service."""
    from speakquest.config import settings

    ok = True
    if not settings.openai_api_key and not settings.transcription_url.startswith("http://localhost"):
        print("Warning: OPENAI_API_KEY is not set; speech endpoints will return 503.")
    if settings.progress_backend == "file":
        progress_dir = Path(settings.progress_file).resolve().parent
        if progress_dir.exists() and not os.access(progress_dir, os.W_OK):
            print(f"Error: progress directory {progress_dir} is not writable.")
            ok = False
    print(f"Progress backend: {settings.progress_backend}")
    return ok


def main() -> int:
    args = create_argument_parser().parse_args()

    if (args.ssl_cert is None) != (args.ssl_key is None):
        print("Error: --ssl-cert and --ssl-key must be given together.")
        return 2

    # Settings and the app package live under backend/
    sys.path.insert(0, str(BACKEND_DIR))
    os.chdir(BACKEND_DIR)

    if not check_configuration():
        return 1
    if args.check_only:
        return 0

    import uvicorn

    protocol = "https" if args.ssl_cert else "http"
    print(f"Starting backend on {protocol}://{args.host}:{args.port}...")
    uvicorn.run(
        "speakquest.main:app",
        host=args.host,
        port=args.port,
        reload=not args.no_reload,
        reload_dirs=[str(BACKEND_DIR / "speakquest")] if not args.no_reload else None,
        ssl_certfile=args.ssl_cert,
        ssl_keyfile=args.ssl_key,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
