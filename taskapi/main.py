"""
Task API - main entry point.

Run: python -m taskapi.main
 or: uvicorn taskapi.api.app:create_app --factory --reload
"""

from __future__ import annotations

import uvicorn

from taskapi.config import get_settings


def main():
    """Serve the API with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "taskapi.api.app:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug and not settings.is_production,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
