# wimservice/core/__init__.py
from .exceptions import Fatal, InputNotFoundError, RegistryContractError, ToolError, UsageError, WimServiceError
from .logger import Log

__all__ = [
    "Fatal",
    "InputNotFoundError",
    "Log",
    "RegistryContractError",
    "ToolError",
    "UsageError",
    "WimServiceError",
]
