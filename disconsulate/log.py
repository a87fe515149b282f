from __future__ import annotations

import logging

LEVELS = ("DEBUG", "INFO", "ERROR", "FATAL")


class Logger:
    """Leveled message sink.

    Subclasses implement ``log``; the level helpers all funnel through it.
    The base class discards everything.
    """

    def log(self, level: str, message: str, service: str | None = None) -> None:
        return None

    def debug(self, message: str, service: str | None = None) -> None:
        self.log("DEBUG", message, service)

    def info(self, message: str, service: str | None = None) -> None:
        self.log("INFO", message, service)

    def error(self, message: str, service: str | None = None) -> None:
        self.log("ERROR", message, service)

    def fatal(self, message: str, service: str | None = None) -> None:
        self.log("FATAL", message, service)


class NullLogger(Logger):
    pass


_STD_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "ERROR": logging.ERROR,
    "FATAL": logging.CRITICAL,
}


class StdLogger(Logger):
    """Forward to the ``logging`` module (FATAL maps to CRITICAL)."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("disconsulate")

    def log(self, level: str, message: str, service: str | None = None) -> None:
        lvl = _STD_LEVELS.get(level.upper(), logging.INFO)
        if service:
            self._logger.log(lvl, "[%s] %s", service, message)
        else:
            self._logger.log(lvl, "%s", message)


class MultiLogger(Logger):
    def __init__(self, *loggers: Logger) -> None:
        self.loggers = list(loggers)

    def log(self, level: str, message: str, service: str | None = None) -> None:
        for lg in self.loggers:
            lg.log(level, message, service)
