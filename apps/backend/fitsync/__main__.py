"""Run the API with uvicorn: python -m fitsync"""

import uvicorn

from .crosscutting.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "fitsync.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development(),
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
