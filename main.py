import os
import sys
from pathlib import Path

import uvicorn

from goal_progress.logger import setup_logging

# Add project root to path
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))


def main():
    """Main entry point for the Goal Progress web service."""
    setup_logging()

    reload_enabled = os.getenv("GOAL_PROGRESS_RELOAD", "0").lower() in {"1", "true", "yes"}
    host = os.getenv("GOAL_PROGRESS_HOST", "0.0.0.0")
    port = int(os.getenv("GOAL_PROGRESS_PORT", "8010"))

    uvicorn.run(
        "web.backend.app:app",
        host=host,
        port=port,
        reload=reload_enabled,
        reload_dirs=["web", "goal_progress"] if reload_enabled else None,
    )


if __name__ == "__main__":
    main()
