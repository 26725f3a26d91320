import logging
from pathlib import Path

CONSOLE_HANDLER = "giz-console"
FILE_HANDLER = "giz-file"

# Pass as ``extra`` for records that only belong in the log file, such as
# errors click is about to print anyway
FILE_ONLY = {"console": False}


def _on_console(record: logging.LogRecord) -> bool:
    return getattr(record, "console", True)


def setup_logging(log_file: Path) -> None:
    """Log to the console without timestamps and to ``log_file`` with them.

    Handlers from an earlier call are replaced, not duplicated.
    """
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    for handler in list(logger.handlers):
        if handler.get_name() in (CONSOLE_HANDLER, FILE_HANDLER):
            logger.removeHandler(handler)
            handler.close()

    # File handler with timestamps
    file_handler = logging.FileHandler(filename=log_file, mode="a")
    file_handler.set_name(FILE_HANDLER)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(levelname)s - %(message)s",
                          datefmt="%Y-%m-%d %H:%M:%S")
    )

    # Console handler without timestamps
    console_handler = logging.StreamHandler()
    console_handler.set_name(CONSOLE_HANDLER)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    console_handler.addFilter(_on_console)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
