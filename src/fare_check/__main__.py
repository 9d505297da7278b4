"""Script entrypoint for the Fare Check HTTP server."""

import uvicorn

from fare_check.config import get_settings


def main() -> None:
    """Run HTTP server."""
    settings = get_settings()
    uvicorn.run(
        "fare_check.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        factory=False,
    )


if __name__ == "__main__":
    main()
