#!/usr/bin/env python3
"""
Lending Desk Entry Point

Starts the FastAPI server with the host, port and logging taken from the
LENDING_DESK_* environment (or .env).
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from lending_desk.api import run_server
from lending_desk.config import get_config
from lending_desk.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(config.log_level, config.log_format, config.log_file)

    print("Starting Lending Desk...")
    print(f"Storage: {config.database_url}")
    print(f"API available at: http://{config.api_host}:{config.api_port}")
    print(f"Documentation at: http://{config.api_host}:{config.api_port}/docs")
    print()

    try:
        run_server(host=config.api_host, port=config.api_port, debug=False)
    except KeyboardInterrupt:
        print("\nShutting down Lending Desk...")
    except OSError as e:
        logger.error("Error starting server: %s", e)
        sys.exit(1)
