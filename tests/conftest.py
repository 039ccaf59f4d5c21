import os
from pathlib import Path

import pytest

BASE_NS = 1_700_000_000 * 1_000_000_000


def make_file(folder: Path, name: str, content: str = "", age: int = 0) -> Path:
    """Create *name* in *folder* with an mtime *age* seconds after a fixed base."""
    path = folder / name
    path.write_text(content or name, encoding="utf-8")
    ns = BASE_NS + age * 1_000_000_000
    os.utime(path, ns=(ns, ns))
    return path


class FakeNotifier:
    def __init__(self, fail: bool = False):
        self.sent = []
        self._fail = fail

    def send(self, report, recipients):
        if self._fail:
            raise OSError("smtp down")
        self.sent.append((report, list(recipients)))


@pytest.fixture
def src(tmp_path):
    d = tmp_path / "src"
    d.mkdir()
    return d


@pytest.fixture
def dst(tmp_path):
    d = tmp_path / "dst"
    d.mkdir()
    return d


@pytest.fixture
def notifier():
    return FakeNotifier()
