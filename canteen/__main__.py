"""
开发启动入口：python -m canteen
"""

import uvicorn

from .config.settings import settings


def main() -> None:
    uvicorn.run(
        "canteen.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
