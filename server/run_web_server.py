#!/usr/bin/env python3
"""
Development server runner for the moderation API.
"""

import uvicorn
from dotenv import load_dotenv

from shared_lib.config import get_config

if __name__ == "__main__":
    load_dotenv()
    settings = get_config()

    print(f"Starting {settings.app_name} ({settings.environment})...")
    print(f"Moderation API: http://localhost:{settings.web_server.port}/api/admin/content")
    print(f"Health check: http://localhost:{settings.web_server.port}/health")

    uvicorn.run(
        "server.web.app.main:app",
        host=settings.web_server.host,
        port=settings.web_server.port,
        workers=settings.web_server.workers,
        log_level=settings.log_level.value.lower(),
    )
