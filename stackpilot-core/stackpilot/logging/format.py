"""Formatting of stackpilot log records."""
import logging
from functools import lru_cache

MAX_NAME_LEN = 26

LOG_FORMAT = f"%(asctime)s.%(msecs)03d %(sp_level)5s --- %(sp_name)-{MAX_NAME_LEN}s : %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

SHORT_LEVEL_NAMES = {
    logging.CRITICAL: "FATAL",
    logging.WARNING: "WARN",
}


class DefaultFormatter(logging.Formatter):
    def __init__(self, fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT):
        super().__init__(fmt=fmt, datefmt=datefmt)


class AddFormattedAttributes(logging.Filter):
    """
    Adds the attributes used by ``LOG_FORMAT`` to every record: ``sp_level``, the level name in at most five
    characters, and ``sp_name``, the logger name shortened to ``max_name_len`` (see ``compress_logger_name``).
    """

    def __init__(self, max_name_len: int = MAX_NAME_LEN):
        super().__init__()
        self.max_name_len = max_name_len

    def filter(self, record: logging.LogRecord) -> bool:
        record.sp_level = SHORT_LEVEL_NAMES.get(record.levelno, record.levelname)
        record.sp_name = _compress_cached(record.name, self.max_name_len)
        return True


@lru_cache(maxsize=256)
def _compress_cached(name: str, length: int) -> str:
    return compress_logger_name(name, length)


def compress_logger_name(name: str, length: int) -> str:
    """
    Shortens a dotted logger name to at most ``length`` characters. The package parts are reduced to their
    first letter, left to right, until the name fits (``stackpilot.cloudformation.events`` turns into
    ``s.cloudformation.events`` and then ``s.c.events``). If even that is too long, the name is cut off.
    """
    if len(name) <= length:
        return name

    parts = name.split(".")
    for i in range(len(parts) - 1):
        parts[i] = parts[i][:1]
        compressed = ".".join(parts)
        if len(compressed) <= length:
            return compressed

    return ".".join(parts)[:length]
