#!/usr/bin/env python3
"""
CLI tool to start the OTA updates server.

Starts the FastAPI application with uvicorn. Settings come from the
environment, with backend/.env filling in anything not already set.

Usage:
    python3 web_server.py                    # Start with defaults
    python3 web_server.py --host 0.0.0.0     # Listen on all interfaces
    python3 web_server.py --port 3000        # Use custom port
    python3 web_server.py --reload           # Enable auto-reload for development

Environment Variables:
    OTA_DB_URL: Release database URL (PostgreSQL or SQLite)
    OTA_HOSTNAME: Public base URL clients use to reach this server
    PRIVATE_KEY_PATH: PEM RSA private key for code signing (optional)
    OTA_STORAGE_TYPE: local or s3
    OTA_ENV: Environment (production/development, default: development)
    OTA_LOG_LEVEL: Log level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
"""

import argparse
import os
import sys
from pathlib import Path


def load_env_file() -> None:
    """
    Load environment variables from backend/.env.

    Variables already present in the environment take precedence.
    """
    env_path = Path(__file__).parent / "backend" / ".env"
    if not env_path.exists():
        return

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                if key and key not in os.environ:
                    os.environ[key] = value


def warn_missing_settings() -> None:
    """Print warnings for settings that are commonly forgotten in deployments."""
    if not os.environ.get("OTA_DB_URL"):
        print("WARNING: OTA_DB_URL is not set; using the default PostgreSQL URL.", file=sys.stderr)
    if not os.environ.get("PRIVATE_KEY_PATH"):
        print(
            "WARNING: PRIVATE_KEY_PATH is not set; clients requesting signed manifests "
            "will be rejected. Run setup_signing_key.py to create a key.",
            file=sys.stderr
        )


def parse_arguments() -> argparse.Namespace:
    """
    Parse command-line arguments.

    Arguments:
        --host: Host to bind (default: 127.0.0.1)
        --port: Port to bind (default: 3000)
        --reload: Enable auto-reload for development (default: False)
    """
    parser = argparse.ArgumentParser(
        description="Start the OTA updates server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start development server with auto-reload
  python3 web_server.py --reload

  # Production configuration
  python3 web_server.py --host 0.0.0.0 --port 3000

Environment Variables:
  OTA_DB_URL             Release database URL
  OTA_HOSTNAME           Public base URL used in asset URLs
  PRIVATE_KEY_PATH       PEM RSA private key for code signing
  OTA_STORAGE_TYPE       Blob storage backend (local/s3)
  OTA_ENV                Environment (production/development)
  OTA_LOG_LEVEL          Log level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
        """
    )

    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind the server to (default: 127.0.0.1). "
             "Use 0.0.0.0 to listen on all interfaces."
    )

    parser.add_argument(
        "--port",
        type=int,
        default=3000,
        help="Port to bind the server to (default: 3000)"
    )

    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development. Not recommended for production."
    )

    return parser.parse_args()


def main() -> None:
    """
    Main entry point for the web server CLI tool.

    Exit Codes:
        0: Server stopped normally
        1: Startup checks failed (raised by the application lifespan)
    """
    args = parse_arguments()

    # Ensure the repo root is on sys.path so "backend.src.main" is importable
    repo_root = str(Path(__file__).parent)
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)

    load_env_file()
    warn_missing_settings()

    import uvicorn

    print("\nStarting OTA updates server...")
    print(f"Host: {args.host}")
    print(f"Port: {args.port}")
    print(f"Auto-reload: {'enabled' if args.reload else 'disabled'}")
    print(f"\nManifest endpoint: http://{args.host}:{args.port}/api/manifest")
    print(f"Health check: http://{args.host}:{args.port}/api/health")
    print("\nPress CTRL+C to stop the server\n")

    try:
        uvicorn.run(
            "backend.src.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level="info",
        )
    except KeyboardInterrupt:
        print("\n\nServer stopped by user (CTRL+C)")
        sys.exit(0)


if __name__ == "__main__":
    main()
