#!/usr/bin/env python3
"""
Start the GymDesk API: bring the schema up to date, then serve with uvicorn.
"""
import sys
import os
import socket
import time
from pathlib import Path

# Add the project directory to the Python path
project_dir = Path(__file__).parent
sys.path.insert(0, str(project_dir))

# Set up environment
os.chdir(project_dir)

from gymdesk.core.config import settings
from gymdesk.core.logging_config import get_logger

logger = get_logger("run_server")


def run_migrations():
    """Run migrations once in this process before uvicorn starts (avoids running in async startup)."""
    try:
        from scripts.init_db import init_db
        init_db()
    except Exception as e:
        logger.error(f"Migrations failed (server will still start): {e}", exc_info=True)


def is_port_in_use(host, port):
    """Check if a port is already in use."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((host, port))
            return False
        except OSError:
            return True


def wait_for_port(host, port, attempts=3, delay=3):
    """Retry a few times (e.g. previous instance still shutting down)."""
    for attempt in range(attempts):
        if not is_port_in_use(host, port):
            return True
        logger.warning(f"Port {port} is in use. Retrying in {delay}s ({attempt + 1}/{attempts})...")
        time.sleep(delay)
    return not is_port_in_use(host, port)


if __name__ == "__main__":
    import uvicorn

    HOST = settings.HOST
    PORT = settings.PORT

    if not wait_for_port(HOST, PORT):
        logger.error(f"Port {PORT} is still in use after retries. Another instance may be running.")
        sys.exit(1)

    run_migrations()

    # Test import before starting server
    try:
        from gymdesk.main import app  # noqa: F401
    except Exception as e:
        logger.error(f"Failed to import app: {e}", exc_info=True)
        sys.exit(1)

    try:
        logger.info(f"Starting uvicorn on {HOST}:{PORT}")
        uvicorn.run(
            "gymdesk.main:app",
            host=HOST,
            port=PORT,
            log_level="info",
            access_log=True,
            reload=False,
        )
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Failed to start server: {e}", exc_info=True)
        sys.exit(1)
