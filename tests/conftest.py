"""Shared fixtures for layerfs tests."""

import errno

import pytest

from layerfs import MemoryFS


def make_basic_fs(id_filename: str, id_content: str) -> MemoryFS:
    """MemoryFS with mydir/f1-<id_filename>.txt and mydir/f2-<id_filename>.txt."""
    fs = MemoryFS()
    fs.write_file(f"mydir/f1-{id_filename}.txt", f"f1-{id_content}".encode())
    fs.write_file(f"mydir/f2-{id_filename}.txt", f"f2-{id_content}".encode())
    return fs


class FailingFS:
    """Backend whose stat always fails with an I/O error."""

    name = "failingfs"

    def __init__(self) -> None:
        self.calls = 0

    def stat(self, path):
        self.calls += 1
        raise OSError(errno.EIO, "stat error", path)

    def lstat_if_possible(self, path):
        self.calls += 1
        raise OSError(errno.EIO, "stat error", path)

    def open(self, path):
        raise AssertionError("open must not be reached")


class CountingFS:
    """Wraps a backend and counts open() calls."""

    def __init__(self, fs) -> None:
        self._fs = fs
        self.name = fs.name
        self.opens = 0

    def stat(self, path):
        return self._fs.stat(path)

    def open(self, path):
        self.opens += 1
        return self._fs.open(path)


@pytest.fixture
def basic_fs():
    """Factory for MemoryFS instances holding two files under mydir."""
    return make_basic_fs


@pytest.fixture
def failing_fs():
    """A backend whose stat raises a non-missing-file OSError."""
    return FailingFS()


@pytest.fixture
def counting_fs():
    """Factory wrapping a backend so its open() calls are counted."""
    return CountingFS
