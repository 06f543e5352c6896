from __future__ import annotations

import logging

_ROOT = "hcxnet"
_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """
    Attach a single stream handler to the ``hcxnet`` package logger.

    Safe to call more than once; the handler is only added the first time.
    Applications that configure logging themselves should not call this.
    """
    logger = logging.getLogger(_ROOT)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    if not any(getattr(h, "_hcxnet", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._hcxnet = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
