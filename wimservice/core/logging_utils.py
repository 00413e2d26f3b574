# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/core/logging_utils.py
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator

_EMOJI_BY_LEVEL = (
    (logging.ERROR, "❌"),
    (logging.WARNING, "⚠️"),
    (logging.INFO, "✅"),
)


def emoji_for_level(level: int) -> str:
    for threshold, emoji in _EMOJI_BY_LEVEL:
        if level >= threshold:
            return emoji
    return "🔍"


def log_with_emoji(logger: logging.Logger, level: int, msg: str, *args: Any) -> None:
    logger.log(level, emoji_for_level(level) + " " + msg, *args)


@contextmanager
def log_step(logger: logging.Logger, description: str) -> Iterator[None]:
    """
    Bracket a servicing phase with start / done / failed lines carrying the elapsed time.

        with log_step(logger, "Mounting install.wim (index 1)"):
            image_service.mount(...)
    """
    started = time.monotonic()
    log_with_emoji(logger, logging.INFO, "%s ...", description)
    try:
        yield
    except Exception as e:
        log_with_emoji(logger, logging.ERROR, "%s failed after %.2fs: %s", description, time.monotonic() - started, e)
        raise
    log_with_emoji(logger, logging.INFO, "%s done in %.2fs", description, time.monotonic() - started)
