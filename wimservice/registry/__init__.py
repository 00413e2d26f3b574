# wimservice/registry/__init__.py
from .hives import OFFLINE_HIVES, HiveAlias, HiveSession, loaded_hives, reclaim_resources
from .regfile import RegFile, RegKeyRef, load_reg_file

__all__ = [
    "HiveAlias",
    "HiveSession",
    "OFFLINE_HIVES",
    "RegFile",
    "RegKeyRef",
    "load_reg_file",
    "loaded_hives",
    "reclaim_resources",
]
