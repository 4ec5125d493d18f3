"""Run the API server: ``python -m jwt_inspector``."""

import uvicorn

from jwt_inspector.core.config import settings


def main() -> None:
    uvicorn.run(
        "jwt_inspector.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_config=None,  # keep the JSON logging configured by observability
    )


if __name__ == "__main__":
    main()
