"""Run the Cluster Bridge service with uvicorn."""

import uvicorn

from .main import settings


def main() -> None:
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.value.lower(),
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
