"""pytest グローバル設定: ルートパスの解決と共通フィクスチャ。"""

from __future__ import annotations

from pathlib import Path
import sys

import pytest

_REPO_ROOT = Path(__file__).resolve().parent
if _REPO_ROOT.name == "tests":
    _REPO_ROOT = _REPO_ROOT.parent

_ROOT_STR = str(_REPO_ROOT)
if _ROOT_STR not in sys.path:
    sys.path.insert(0, _ROOT_STR)

from tests.helpers.fakes import RecordingLogger  # noqa: E402


@pytest.fixture
def repo_root() -> Path:
    return _REPO_ROOT


@pytest.fixture
def sample_config_path(repo_root: Path) -> Path:
    return repo_root / "accuracy" / "config" / "budgets.yaml"


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()
