# SPDX-License-Identifier: LGPL-3.0-or-later
# wimservice/core/exceptions.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional

# Process exit codes; main() exits with Fatal.code.
EXIT_OK = 0
EXIT_USAGE = 2
EXIT_INPUT_NOT_FOUND = 3
EXIT_REGISTRY_CONTRACT = 4
EXIT_MOUNT_FAILED = 5
EXIT_UNMOUNT_FAILED = 6
EXIT_INTERRUPTED = 130


def _exit_code(value: Any) -> int:
    try:
        code = int(value)
    except (TypeError, ValueError):
        return 1
    if code < 0:
        return 1
    return min(code, 255)


def _flatten(text: Optional[str], limit: int = 600) -> str:
    s = " ".join((text or "").split())
    return s if len(s) <= limit else s[: limit - 3] + "..."


@dataclass(eq=False)
class WimServiceError(Exception):
    """
    Error with an exit code, a one-line message and structured context.

    ``str(e)`` is what the operator sees; ``to_dict()`` is what lands in the
    run report.
    """
    code: int = 1
    msg: str = "error"
    cause: Optional[BaseException] = None
    context: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        self.code = _exit_code(self.code)
        self.msg = _flatten(self.msg) or type(self).__name__
        self.context = dict(self.context or {})
        Exception.__init__(self, self.msg)

    def user_message(self, *, include_context: bool = False, include_cause: bool = False) -> str:
        out = self.msg
        if include_context and self.context:
            kv = ", ".join(f"{k}={self.context[k]!r}" for k in sorted(self.context))
            out += f" [{_flatten(kv)}]"
        if include_cause and self.cause is not None:
            out += f" (cause: {type(self.cause).__name__}: {_flatten(str(self.cause))})"
        return out

    def __str__(self) -> str:
        return self.msg

    def to_dict(self, *, include_cause: bool = False) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "type": type(self).__name__,
            "code": self.code,
            "message": self.msg,
            "context": dict(self.context),
        }
        if include_cause and self.cause is not None:
            d["cause"] = {"type": type(self.cause).__name__, "message": _flatten(str(self.cause))}
        return d


class Fatal(WimServiceError):
    """Ends the run; main() exits with ``code``."""


class _ServicingHalt(Fatal):
    """Fatal with a fixed exit code, raised as ``SomeHalt("message", key=value, ...)``."""

    exit_code: ClassVar[int] = 1
    default_msg: ClassVar[str] = "servicing halted"

    def __init__(self, msg: Optional[str] = None, **context: Any):
        super().__init__(code=self.exit_code, msg=msg or self.default_msg, context=context)


class UsageError(_ServicingHalt):
    """No servicing action requested, or unusable options."""

    exit_code = EXIT_USAGE
    default_msg = "usage error"


class InputNotFoundError(_ServicingHalt):
    """Working folder, image file or an input file is missing."""

    exit_code = EXIT_INPUT_NOT_FOUND
    default_msg = "input not found"


class RegistryContractError(_ServicingHalt):
    """Registry file is not a .reg export, or touches keys outside the offline hive aliases."""

    exit_code = EXIT_REGISTRY_CONTRACT
    default_msg = "registry file violates the offline hive alias contract"


class ToolError(Fatal):
    """Mount or unmount failed. Best-effort steps record a ToolResult instead."""


def format_exception_for_cli(e: BaseException, *, verbose: int = 0) -> str:
    """
    One line for the console. verbose=1 adds context, verbose>=2 adds the cause
    (or the type name for foreign exceptions).
    """
    if isinstance(e, WimServiceError):
        return e.user_message(include_context=verbose >= 1, include_cause=verbose >= 2)
    text = _flatten(str(e))
    if verbose >= 2:
        return f"{type(e).__name__}: {text}"
    return text or type(e).__name__
