from loguru import logger
from pathlib import Path
import sys

from ..config import settings


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[component]}</magenta> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[component]} | {name}:{line} - {message}"


def setup_logging(log_level: str = "INFO", log_file: str = ""):
    """Configure the console sink and, when ``log_file`` is set, a rotating file sink.

    Modules log through ``app_logger.bind(component=...)``; records from
    unbound loggers show up as ``quizflow``.
    """
    logger.remove()
    logger.configure(extra={"component": "quizflow"})

    logger.add(sys.stdout, format=CONSOLE_FORMAT, level=log_level, colorize=True)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=FILE_FORMAT,
            level=log_level,
            rotation="10 MB",
            retention="30 days",
            compression="zip",
        )

    return logger


app_logger = setup_logging(settings.log_level, settings.log_file)
