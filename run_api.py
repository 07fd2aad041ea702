"""
Run Tennis Data Pipeline API Server

Start the REST API server for the tennis data pipeline.
"""

import os
import sys
import argparse
import logging
import uvicorn
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from tennis_pipeline.infrastructure.settings import load_env_file

APP_PATH = "tennis_pipeline.api.main:app"


def main():
    """Run the API server."""
    parser = argparse.ArgumentParser(description="Run Tennis Data Pipeline API")
    parser.add_argument("--port", type=int, default=8000, help="Port to run on")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--data-dir", type=str, default=None, help="Historical data directory (overrides TENNIS_DATA_DIR)")
    parser.add_argument("--tour", choices=["atp", "wta"], default=None, help="Tour to serve (overrides TENNIS_TOUR)")

    args = parser.parse_args()

    load_env_file()
    if args.data_dir:
        os.environ["TENNIS_DATA_DIR"] = args.data_dir
    if args.tour:
        os.environ["TENNIS_TOUR"] = args.tour

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    # Reload needs an import string rather than an app object
    uvicorn.run(
        APP_PATH,
        host=args.host,
        port=args.port,
        reload=args.reload
    )


if __name__ == "__main__":
    main()
