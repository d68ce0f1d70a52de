"""
Production runner.

Starts uvicorn with the graceful-shutdown timeout taken from settings so the
lifespan shutdown step (janitor stop, session audit, Mongo close) is bounded.

    python main.py
"""

import uvicorn

from config import AppSettings


def main() -> None:
    settings = AppSettings()
    uvicorn.run(
        "asgi:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production,
        timeout_graceful_shutdown=int(settings.shutdown_timeout_seconds),
        log_config=None,
    )


if __name__ == "__main__":
    main()
