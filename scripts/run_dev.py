#!/usr/bin/env python3
"""
Development server runner for the Pipeline Studio API.

Loads .env from the project root, then starts uvicorn with hot reload and
console-friendly logs unless APP__LOG_FORMAT says otherwise.
"""

import os
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
    print(f"No .env file found at {env_file}; using defaults (demo gateway, in-memory client state)")

os.environ.setdefault("APP__LOG_FORMAT", "console")


if __name__ == "__main__":
    import uvicorn
    from pipeline_studio.config import get_settings

    settings = get_settings()
    server_config = settings.server

    print("Starting Pipeline Studio development server...")
    print(f"  API docs:  http://{server_config.host}:{server_config.port}/docs")
    print(f"  Health:    http://{server_config.host}:{server_config.port}/health")
    print(f"  Gateway:   {settings.gateway.base_url}")
    print()

    uvicorn.run(
        server_config.app_module,
        host=server_config.host,
        port=server_config.port,
        reload=server_config.reload,
        reload_dirs=[str(src_path)],
        log_config=None,  # structlog handles formatting
        access_log=False,  # logging_middleware logs requests
    )
