import os
import sys

import pytest


def pytest_configure():
    # Make `src/` importable so `auth.*`, `common.*`, `screens.*` resolve as top-level packages
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    src_path = os.path.join(root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


@pytest.fixture(autouse=True)
def _isolate_khaata_env(monkeypatch: pytest.MonkeyPatch):
    # A developer's own KHAATA_* settings must not reach the tests
    for name in list(os.environ):
        if name.startswith("KHAATA_"):
            monkeypatch.delenv(name, raising=False)
