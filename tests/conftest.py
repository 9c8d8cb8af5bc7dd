"""
Shared fixtures: a fixed clock, an aged-file factory, a quiet run logger and
a ready-to-use file archive configuration.
"""

import datetime
import os

import pytest

from logarchiver.helpers.config import FileArchiveConfig
from logarchiver.logger import RunLogger

NOW = datetime.datetime(2025, 10, 1, 12, 0, 0, tzinfo=datetime.UTC)


class FixedClock:
    """Callable clock that tests can move."""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


def set_mtime(path, when: datetime.datetime):
    ts = when.timestamp()
    os.utime(path, (ts, ts))


def make_file(path, when: datetime.datetime, content: bytes = b"data"):
    path = os.fspath(path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(content)
    set_mtime(path, when)
    return path


def days_ago(days: float, now=NOW) -> datetime.datetime:
    return now - datetime.timedelta(days=days)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def dirs(tmp_path):
    """Source, destination, staging volume and log root folders."""
    paths = {name: tmp_path / name for name in ("src", "dst", "vol", "logs")}
    for p in paths.values():
        p.mkdir()
    return paths


@pytest.fixture
def run_log(dirs, clock):
    log = RunLogger(dirs["logs"], "App", clock=clock, console=False)
    yield log
    log.close()


@pytest.fixture
def archive_config(dirs):
    return FileArchiveConfig(
        source=dirs["src"],
        destination=dirs["dst"],
        app_name="App",
        keep_days=14,
        compress_drive=dirs["vol"],
        log_folder=dirs["logs"],
    )


def read_log(log: RunLogger) -> str:
    with open(log.current_path, "r", encoding="utf-8") as f:
        return f.read()
