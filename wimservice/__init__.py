# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/__init__.py
"""
wimservice - offline servicing of Windows install images

Mounts an install.wim with DISM, removes provisioned AppX packages by display-name
pattern, imports a .reg file into the image's offline SOFTWARE / SYSTEM / default
user hives, then commits or discards the changes.

Usage as a library:

    from wimservice import ServicingOrchestrator, ServicingRequest

    req = ServicingRequest(working_folder=r"D:\\images", package_list="remove.txt")
    report = ServicingOrchestrator(logger, req, operator=..., image_service=..., ...).run()
"""

__version__ = "0.1.0"

from .orchestrator import ServicingOrchestrator, ServicingReport, ServicingRequest, ServicingState
from .tools import Disposition

__all__ = [
    "__version__",
    "Disposition",
    "ServicingOrchestrator",
    "ServicingReport",
    "ServicingRequest",
    "ServicingState",
]
