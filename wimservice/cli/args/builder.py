# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/cli/args/builder.py
from __future__ import annotations

import argparse

from ...core.logger import c
from ..help_texts import PACKAGE_LIST_EXAMPLE, REG_EXAMPLE, YAML_EXAMPLE


class HelpFormatter(argparse.RawDescriptionHelpFormatter, argparse.ArgumentDefaultsHelpFormatter):
    """Keeps the epilog layout and shows defaults."""


def _build_epilog() -> str:
    sections = [
        c("YAML example:\n", "cyan", ["bold"]) + c(YAML_EXAMPLE, "cyan"),
        c(PACKAGE_LIST_EXAMPLE, "cyan"),
        c(REG_EXAMPLE, "cyan"),
    ]
    return "\n".join(sections)
