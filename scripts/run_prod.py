#!/usr/bin/env python3
"""
Production server runner for the Pipeline Studio API.

Project state is held in process memory, so the server always runs a
single worker regardless of SERVER__WORKERS.
"""

import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

from dotenv import load_dotenv

env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)
    print(f"Loaded environment variables from {env_file}")
else:
    print(f"No .env file found at {env_file}")
    print("  Ensure environment variables are set via your deployment system")


if __name__ == "__main__":
    import uvicorn
    from pipeline_studio.config import get_settings

    settings = get_settings()
    server_config = settings.server

    if server_config.workers != 1:
        print(f"Ignoring SERVER__WORKERS={server_config.workers}: state is per process")

    print("Starting Pipeline Studio production server...")
    print(f"  Listening: {server_config.host}:{server_config.port}")
    print(f"  Gateway:   {settings.gateway.base_url}")
    print()

    uvicorn.run(
        server_config.app_module,
        host=server_config.host,
        port=server_config.port,
        workers=1,
        reload=False,
        log_config=None,
        access_log=False,
        server_header=False,
        date_header=False,
    )
