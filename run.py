#!/usr/bin/env python3
"""
Simple run script for the NodeFlow service.

Usage:
    python run.py
    
Or with custom settings:
    HOST=127.0.0.1 PORT=8080 python run.py

SIGINT/SIGTERM stop accepting connections and let in-flight requests
finish for up to SHUTDOWN_GRACE_SECONDS before exiting.
"""

import uvicorn

from nodeflow.config import settings


def main():
    """Run the FastAPI application."""
    reload = not settings.is_production
    
    print(f"""
NodeFlow {settings.APP_VERSION} ({settings.ENVIRONMENT})
  Server:        http://{settings.HOST}:{settings.PORT}
  API Docs:      http://{settings.HOST}:{settings.PORT}/docs
  Endpoints:     POST /run-workflow, POST /pipelines/parse, GET /health, GET /test
  Google API Key: {"configured" if settings.GOOGLE_API_KEY else "missing"}
    """)
    
    uvicorn.run(
        "nodeflow.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=reload,
        log_level=settings.LOG_LEVEL.lower(),
        timeout_graceful_shutdown=settings.SHUTDOWN_GRACE_SECONDS,
    )


if __name__ == "__main__":
    main()
