# SPDX-License-Identifier: LGPL-3.0-or-later
# wimservice/core/logger.py
"""
Logging for servicing runs.

One named logger (``wimservice``) with:

  * a console handler on stderr: short timestamp, level emoji, termcolor colours
    when stderr is a terminal
  * an optional file handler that always gets the long, uncoloured layout
    (timestamp with milliseconds, pid, logger, module:line)
  * an optional NDJSON layout for unattended image builds (``--json-logs``)

Context travels as ``extra={"ctx": {...}}`` and is rendered as ``key=value``
pairs after the message; ``Log.bind`` returns an adapter that adds it for you.
"""
from __future__ import annotations

import datetime as _dt
import json
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union

from termcolor import colored as _colored

TRACE = 5
if logging.getLevelName(TRACE) != "TRACE":
    logging.addLevelName(TRACE, "TRACE")

_LEVELS: Dict[str, Tuple[str, str]] = {
    # levelname: (emoji, colour)
    "TRACE": ("🧬", "cyan"),
    "DEBUG": ("🔍", "blue"),
    "INFO": ("✅", "green"),
    "WARNING": ("⚠️", "yellow"),
    "ERROR": ("💥", "red"),
    "CRITICAL": ("🧨", "red"),
}

Ctx = Mapping[str, Any]


def is_tty(stream=None) -> bool:
    """True if *stream* (default stdout) is attached to a terminal."""
    stream = sys.stdout if stream is None else stream
    try:
        return bool(stream.isatty())
    except (AttributeError, ValueError):
        return False


def _supports_unicode(stream=None) -> bool:
    # Legacy Windows code pages (cp437, cp1252) cannot encode the level emoji.
    enc = getattr(stream or sys.stderr, "encoding", None) or "utf-8"
    try:
        "✅".encode(enc)
    except (LookupError, UnicodeEncodeError):
        return False
    return True


def c(
    text: str,
    color: Optional[str] = None,
    attrs: Optional[List[str]] = None,
    *,
    enable: bool = True,
) -> str:
    """termcolor wrapper that is a no-op when disabled or uncoloured."""
    if not (enable and color):
        return text
    return _colored(text, color=color, attrs=attrs or [])


def _short(v: Any, limit: int = 240) -> str:
    s = str(v).replace("\r", "\\r").replace("\n", "\\n")
    return s if len(s) <= limit else s[: limit - 1] + "…"


def _render_ctx(ctx: Optional[Ctx]) -> str:
    if not ctx:
        return ""
    return " " + " ".join(f"{k}={_short(ctx[k])}" for k in sorted(ctx, key=str))


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    Adapter carrying a persistent context; per-call ``extra={"ctx": ...}`` merges on top.

      log = Log.bind(logger, reg="tweaks.reg")
      log.info("Loaded %s", key)
    """

    def __init__(self, logger: logging.Logger, ctx: Optional[Ctx] = None):
        super().__init__(logger, {"ctx": dict(ctx or {})})

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> Tuple[Any, Dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["ctx"] = {**self.extra["ctx"], **dict(extra.get("ctx") or {})}
        kwargs["extra"] = extra
        return msg, kwargs

    def bind(self, **ctx: Any) -> "ContextLoggerAdapter":
        return ContextLoggerAdapter(self.logger, {**self.extra["ctx"], **ctx})


@dataclass(frozen=True)
class LogStyle:
    color: bool = True
    long: bool = False  # file layout: ms, pid, logger name, module:line
    unicode: bool = True
    utc: bool = False


class EmojiFormatter(logging.Formatter):
    def __init__(self, style: LogStyle):
        super().__init__()
        self._style = style

    def _stamp(self, created: float) -> str:
        tz = _dt.timezone.utc if self._style.utc else None
        dt = _dt.datetime.fromtimestamp(created, tz=tz)
        return dt.strftime("%H:%M:%S.%f")[:-3] if self._style.long else dt.strftime("%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        emoji, colour = _LEVELS.get(record.levelname, ("•", None))
        if not self._style.unicode:
            emoji = "·"
        colour_ok = self._style.color and is_tty(sys.stderr)

        level = c(f"{record.levelname:<8}", colour, enable=colour_ok)
        msg = record.getMessage()
        if record.levelno >= logging.WARNING:
            msg = c(msg, colour, ["bold"], enable=colour_ok)

        where = ""
        if self._style.long:
            where = f" [pid={os.getpid()} {record.name} {record.module}:{record.lineno}]"

        line = f"{self._stamp(record.created)} {emoji} {level}{where} {msg}{_render_ctx(getattr(record, 'ctx', None))}"

        if record.exc_info:
            tb = "\n".join("  " + ln for ln in self.formatException(record.exc_info).splitlines())
            line += "\n" + c(tb, "red", enable=colour_ok)
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def __init__(self, *, utc: bool = True, include_src: bool = True):
        super().__init__()
        self._utc = bool(utc)
        self._include_src = bool(include_src)

    def format(self, record: logging.LogRecord) -> str:
        tz = _dt.timezone.utc if self._utc else None
        obj: Dict[str, Any] = {
            "ts": _dt.datetime.fromtimestamp(record.created, tz=tz).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "pid": os.getpid(),
        }
        if self._include_src:
            obj["module"] = record.module
            obj["lineno"] = record.lineno
        ctx = getattr(record, "ctx", None)
        if ctx:
            obj["ctx"] = {str(k): _short(v) for k, v in dict(ctx).items()}
        if record.exc_info:
            obj["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else "Exception"
            obj["traceback"] = self.formatException(record.exc_info)
        return json.dumps(obj, ensure_ascii=False, default=str)


_warned: Set[str] = set()


class Log:
    @staticmethod
    def _level_from_flags(verbose: int, quiet: int) -> int:
        """-q WARNING, -qq ERROR, -vv DEBUG, -vvv TRACE; quiet wins."""
        if quiet:
            return logging.ERROR if quiet >= 2 else logging.WARNING
        if verbose >= 3:
            return TRACE
        return logging.DEBUG if verbose >= 2 else logging.INFO

    @staticmethod
    def bind(logger: logging.Logger, **ctx: Any) -> ContextLoggerAdapter:
        return ContextLoggerAdapter(logger, ctx)

    @staticmethod
    def banner(logger: logging.Logger, title: str, *, char: str = "─", width: int = 72) -> None:
        logger.info(f" {title.strip()} ".center(width, char)[:width])

    @staticmethod
    def step(logger: logging.Logger, msg: str, **ctx: Any) -> None:
        logger.info("➡️  %s", msg, extra={"ctx": ctx} if ctx else None)

    @staticmethod
    def ok(logger: logging.Logger, msg: str, **ctx: Any) -> None:
        logger.info("✅ %s", msg, extra={"ctx": ctx} if ctx else None)

    @staticmethod
    def warn(logger: logging.Logger, msg: str, **ctx: Any) -> None:
        logger.warning("⚠️  %s", msg, extra={"ctx": ctx} if ctx else None)

    @staticmethod
    def fail(logger: logging.Logger, msg: str, **ctx: Any) -> None:
        logger.error("💥 %s", msg, extra={"ctx": ctx} if ctx else None)

    @staticmethod
    def trace(logger: logging.Logger, msg: str, *args: Any) -> None:
        if logger.isEnabledFor(TRACE):
            logger.log(TRACE, msg, *args)

    @staticmethod
    def warn_once(logger: logging.Logger, key: Union[str, Tuple[Any, ...]], msg: str) -> bool:
        """Warn once per process for *key*; False if already warned."""
        k = key if isinstance(key, str) else "|".join(_short(x, 160) for x in key)
        if k in _warned:
            return False
        _warned.add(k)
        Log.warn(logger, msg)
        return True

    @staticmethod
    def setup(
        verbose: int = 0,
        log_file: Optional[str] = None,
        *,
        quiet: int = 0,
        color: bool = True,
        utc: bool = False,
        json_logs: bool = False,
        logger_name: str = "wimservice",
    ) -> logging.Logger:
        """(Re)configure and return the project logger; safe to call twice."""
        logger = logging.getLogger(logger_name)
        logger.propagate = False
        level = Log._level_from_flags(verbose, quiet)
        logger.setLevel(level)

        for h in list(logger.handlers):
            logger.removeHandler(h)
            h.close()

        console = logging.StreamHandler(stream=sys.stderr)
        if json_logs:
            console.setFormatter(JsonFormatter(utc=utc))
        else:
            console.setFormatter(
                EmojiFormatter(LogStyle(color=color, long=verbose >= 3, unicode=_supports_unicode(), utc=utc))
            )
        handlers: List[logging.Handler] = [console]

        if log_file:
            fp = Path(log_file).expanduser().resolve()
            fp.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(fp, encoding="utf-8")
            fh.setFormatter(
                JsonFormatter(utc=utc) if json_logs
                else EmojiFormatter(LogStyle(color=False, long=True, unicode=True, utc=utc))
            )
            handlers.append(fh)

        for h in handlers:
            h.setLevel(level)
            logger.addHandler(h)

        logger.debug("Logger initialized (level=%s)", logging.getLevelName(level))
        Log.trace(logger, "TRACE enabled")
        return logger
