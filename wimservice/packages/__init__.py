# wimservice/packages/__init__.py
from .removal import RemovalReport, match_packages, read_pattern_list, remove_provisioned_packages

__all__ = ["RemovalReport", "match_packages", "read_pattern_list", "remove_provisioned_packages"]
