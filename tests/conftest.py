# SPDX-License-Identifier: LGPL-3.0-or-later
import os
import sys
from pathlib import Path

import pytest

_THIS_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _THIS_DIR.parent

for _p in (_REPO_ROOT, _THIS_DIR):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))

os.environ.setdefault("PYTHONPATH", str(_REPO_ROOT))


@pytest.fixture
def working_folder(tmp_path):
    """A working folder holding an (empty) install.wim."""
    (tmp_path / "install.wim").write_bytes(b"MSWIM\x00\x00\x00")
    return tmp_path
