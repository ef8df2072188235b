"""Logging helpers."""

from __future__ import annotations

from typing import Any, Iterable, Mapping
import logging

ROOT_NAME = "credentia"
HIDDEN = "[HIDDEN]"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logging.getLogger(ROOT_NAME).addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """Return a child of the package logger."""
    if name == ROOT_NAME or name.startswith(ROOT_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_NAME}.{name}")


def hide(args: Mapping[str, Any], names: Iterable[str]) -> dict[str, Any]:
    """
    Return a copy of args with the given keys redacted.

    Only keys that are present are replaced.
    """
    out = dict(args)
    for name in names:
        if name in out:
            out[name] = HIDDEN
    return out


class AuthLogger:
    """
    Event logger for user workflows.

    Writes to the package logger and, when log_path is given,
    to a dedicated file. The file handler is not attached to the
    shared logger, so its level and handlers stay as the host set them.
    """

    def __init__(self, log_path: str | None = None, *, name: str = "user") -> None:
        self.logger = get_logger(name)
        self.log_path = log_path
        self._handler: logging.Handler | None = None

        if log_path:
            handler = logging.FileHandler(log_path, encoding="utf-8")
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            handler.setLevel(logging.INFO)
            self._handler = handler

    def event(self, action: str, **data: Any) -> None:
        safe = hide(data, ("password", "repeat", "proposed"))
        self._info("%s %s", action, _fmt(safe))

    def reject(self, action: str, why: str, **data: Any) -> None:
        safe = hide(data, ("password", "repeat", "proposed"))
        self._info("%s rejected why=%s %s", action, why, _fmt(safe))

    def debug(self, msg: str, *args: Any) -> None:
        self.logger.debug(msg, *args)

    def _info(self, msg: str, *args: Any) -> None:
        self.logger.info(msg, *args)
        if self._handler is not None:
            record = self.logger.makeRecord(
                self.logger.name, logging.INFO, __file__, 0, msg, args, None
            )
            self._handler.handle(record)

    def close(self) -> None:
        if self._handler is None:
            return
        self._handler.close()
        self._handler = None


def _fmt(data: Mapping[str, Any]) -> str:
    return " ".join(f"{k}={v}" for k, v in data.items())
