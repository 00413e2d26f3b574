# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/cli/args/helpers.py
from __future__ import annotations

import argparse
from typing import Any, Dict


def _require(v: Any) -> bool:
    # Blank strings from YAML (`package_list: ""`) count as unset.
    if isinstance(v, str):
        return bool(v.strip())
    return v is not None


def _merged_get(args: argparse.Namespace, conf: Dict[str, Any], key: str) -> Any:
    """Command-line value for *key* if one was given, otherwise the config value."""
    v = getattr(args, key, None)
    return v if _require(v) else conf.get(key)
