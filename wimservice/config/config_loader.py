# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/config/config_loader.py
"""
YAML/JSON config files.

Configs are merged in order (later overrides earlier, nested mappings merge) and
then applied as argparse defaults, so anything on the command line still wins.
"""
from __future__ import annotations

import argparse
import glob
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

import yaml

from ..core.utils import U

CONFIG_SUFFIXES = (".yaml", ".yml", ".json")


def _norm_key(k: Any) -> str:
    return str(k).strip().replace("-", "_")


def _deep_merge(base: Dict[str, Any], over: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in over.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


class Config:
    @staticmethod
    def expand_configs(logger: logging.Logger, paths: List[str]) -> List[Path]:
        """
        Resolve --config entries: plain files, globs, or directories (all *.yaml/*.yml/*.json
        inside, sorted). A missing entry is fatal.
        """
        out: List[Path] = []
        for raw in paths:
            s = str(Path(str(raw)).expanduser())
            if any(ch in s for ch in "*?["):
                hits = sorted(glob.glob(s))
                if not hits:
                    U.die(logger, f"Config glob matched nothing: {raw}", 2)
                out.extend(Path(h) for h in hits)
                continue
            p = Path(s)
            if p.is_dir():
                out.extend(sorted(x for x in p.iterdir() if x.suffix.lower() in CONFIG_SUFFIXES))
                continue
            if not p.is_file():
                U.die(logger, f"Config file not found: {raw}", 2)
            out.append(p)
        return out

    @staticmethod
    def load_one(logger: logging.Logger, path: Path) -> Dict[str, Any]:
        text = Path(path).read_text(encoding="utf-8")
        try:
            if Path(path).suffix.lower() == ".json":
                data = json.loads(text) if text.strip() else {}
            else:
                data = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            U.die(logger, f"Invalid config {path}: {e}", 2)
        if data is None:
            return {}
        if not isinstance(data, dict):
            U.die(logger, f"Config {path} must be a mapping at top level, got {type(data).__name__}", 2)
        logger.debug("Loaded config %s (%d key(s))", path, len(data))
        return {_norm_key(k): v for k, v in data.items()}

    @staticmethod
    def load_many(logger: logging.Logger, paths: List[Path]) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for p in paths:
            merged = _deep_merge(merged, Config.load_one(logger, p))
        return merged

    @staticmethod
    def apply_as_defaults(logger: logging.Logger, parser: argparse.ArgumentParser, conf: Dict[str, Any]) -> None:
        """Set parser defaults for every config key that matches an argument dest."""
        dests = {a.dest for a in parser._actions}
        known = {k: v for k, v in conf.items() if k in dests}
        unknown = sorted(k for k in conf if k not in dests)
        if unknown:
            logger.warning("Ignoring unknown config key(s): %s", ", ".join(unknown))
        if known:
            parser.set_defaults(**known)
