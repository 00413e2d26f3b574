# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/cli/help_texts.py
from __future__ import annotations

# NOTE:
# Pure help/documentation text used by argparse epilog rendering.

YAML_EXAMPLE = r"""# wimservice configuration (YAML)
#
# Run (elevated prompt):
#   wimservice --config servicing.yaml
#   wimservice --config base.yaml --config win11-24h2.yaml D:\images\24h2
#
# working_folder: D:\images\24h2     # contains install.wim
# package_list: remove-appx.txt      # relative to working_folder
# registry_file: offline-tweaks.reg  # relative to working_folder
# image_name: install.wim
# index: 1
# mount_dir_name: WIM-OFFLINESERVICING
# disposition: commit                # omit to be asked interactively
# report: servicing-report.json      # relative to working_folder
# dry_run: false
# no_pause: false
# dism_path: C:\Windows\System32\Dism.exe
# reg_path: C:\Windows\System32\reg.exe
# verbose: 2
# log_file: D:\images\wimservice.log
"""

REG_EXAMPLE = r"""Registry file contract:
  Keys must live under one of the offline hive aliases, for example

    Windows Registry Editor Version 5.00

    [HKEY_LOCAL_MACHINE\OFFLINE_SOFTWARE\Policies\Microsoft\Windows\CloudContent]
    "DisableWindowsConsumerFeatures"=dword:00000001

    [HKEY_LOCAL_MACHINE\OFFLINE_SYSTEM\ControlSet001\Control\BitLocker]
    "PreventDeviceEncryption"=dword:00000001

    [HKEY_LOCAL_MACHINE\OFFLINE_DEFAULT\Software\Microsoft\Windows\CurrentVersion\Search]
    "SearchboxTaskbarMode"=dword:00000000

  OFFLINE_SOFTWARE = Windows\System32\config\SOFTWARE
  OFFLINE_SYSTEM   = Windows\System32\config\SYSTEM
  OFFLINE_DEFAULT  = Users\Default\ntuser.dat
"""

PACKAGE_LIST_EXAMPLE = r"""Package list format (one display-name pattern per line, * and ? wildcards):
  # consumer apps
  Microsoft.BingNews
  Microsoft.Xbox*
  Clipchamp.Clipchamp
"""
