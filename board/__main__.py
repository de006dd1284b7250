import logging

import uvicorn

from board.core.config import settings


def main() -> None:
    logging.basicConfig(level=settings.log_level)
    uvicorn.run("board.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
