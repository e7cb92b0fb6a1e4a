from __future__ import annotations

from pathlib import Path

import pytest

SAMPLE_LOG = """\
AutoUpgrade 25.3.250509 launched with default internal options
DATABASE RELEASE UPDATE 19.27.0.0.250415
    File: p37642901_190000_Linux-ARM-64.zip - LOCATED at /u01/software
    File: p37642901_190000_Linux-x86-64.zip - LOCATED at /u01/software
OJVM RELEASE UPDATE 19.27.0.0.250415
    File: p37499406_190000_Linux-ARM-64.zip - LOCATED at /u01/software
    File: p37499406_190000_Linux-x86-64.zip - LOCATED at /u01/software
OPatch 12.2.0.1.46
    File: p6880880_190000_Generic.zip - LOCATED at /u01/software
DATAPUMP BUNDLE PATCH 19.27.0.0.0
    File: p37470729_1927000DBRU_Generic.zip - LOCATED at /u01/software
"""


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project root with an empty ``19c/software`` tree."""
    (tmp_path / "19c" / "software").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def software_dir(project: Path) -> Path:
    return project / "19c" / "software"


@pytest.fixture
def sample_log(software_dir: Path) -> Path:
    path = software_dir / "autoupgrade_20250501.txt"
    path.write_text(SAMPLE_LOG, encoding="utf-8")
    return path
