import logging
import sys
from pathlib import Path
from typing import Optional


logger = logging.getLogger("anvilkit")

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(debug: bool, log_file: Optional[Path] = None):
    """
    Configures the logging system based on the debug flag.

    With ``log_file`` every record is also appended to that file.
    """
    log_level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(log_level)

    if not logger.hasHandlers():
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)

    if log_file is not None:
        target = str(Path(log_file).resolve())
        for h in logger.handlers:
            if isinstance(h, logging.FileHandler) and h.baseFilename == target:
                return
        file_handler = logging.FileHandler(target)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)
