# wimservice/interaction/__init__.py
from .console import ConsoleOperator, Operator

__all__ = ["ConsoleOperator", "Operator"]
