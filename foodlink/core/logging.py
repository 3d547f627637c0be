import logging

from foodlink.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str | None = None) -> logging.Logger:
    lvl = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    logging.basicConfig(level=lvl, format=LOG_FORMAT)

    logger = logging.getLogger("foodlink")
    logger.setLevel(lvl)

    # Driver chatter drowns the request log at DEBUG
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
    return logger
