"""Tests for path resolution across nested filesystems."""

import pytest

from layerfs import MemoryFS, Options, OverlayFS
from layerfs.resolve import collect_dirs, resolve


class LstatMemoryFS(MemoryFS):
    """MemoryFS advertising lstat_if_possible."""

    def __init__(self):
        super().__init__()
        self.lstat_calls = 0

    def lstat_if_possible(self, path):
        self.lstat_calls += 1
        return self.stat(path), True


class CompositeMemoryFS(MemoryFS):
    """MemoryFS that also holds nested backends of its own."""

    def __init__(self, *subs):
        super().__init__()
        self._subs = list(subs)

    def filesystem(self, i):
        return self._subs[i] if 0 <= i < len(self._subs) else None

    def num_filesystems(self):
        return len(self._subs)


# ---------------------------------------------------------------------------
# resolve
# ---------------------------------------------------------------------------


class TestResolve:
    """Test first-match lookup across backends."""

    def test_empty_list_is_not_found(self):
        """Test that an empty backend list raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            resolve([], "anything")

    def test_first_match_wins(self, basic_fs):
        """Test that the earliest backend holding the path owns it."""
        fs1, fs2 = basic_fs("1", "1"), basic_fs("1", "2")
        found = resolve([fs1, fs2], "mydir/f1-1.txt")
        assert found.fs is fs1
        assert found.info.name == "f1-1.txt"
        assert found.lstat_used is False

    def test_later_filesystem_found(self, basic_fs):
        """Test that a miss falls through to later backends."""
        fs1, fs2 = basic_fs("1", "1"), basic_fs("2", "2")
        assert resolve([fs1, fs2], "mydir/f1-2.txt").fs is fs2

    def test_nested_depth_first(self):
        """Test that nested filesystems are searched before the next sibling."""
        inner1, inner2 = MemoryFS(), MemoryFS()
        inner2.write_file("x.txt", b"inner2")
        sibling = MemoryFS()
        sibling.write_file("x.txt", b"sibling")
        nested = OverlayFS(Options(fss=(inner1, inner2)))

        found = resolve([nested, sibling], "x.txt")
        assert found.fs is nested
        with found.fs.open("x.txt") as f:
            assert f.read() == b"inner2"

    def test_composite_checked_before_subs(self):
        """Test that a composite's own entry beats its nested backends."""
        sub = MemoryFS()
        sub.write_file("x.txt", b"sub")
        comp = CompositeMemoryFS(sub)
        comp.write_file("x.txt", b"own")

        assert resolve([comp], "x.txt").fs is comp

    def test_error_aborts_search(self, basic_fs, failing_fs):
        """Test that a non-missing-file error stops the search."""
        later = basic_fs("1", "1")
        with pytest.raises(OSError, match="stat error"):
            resolve([MemoryFS(), failing_fs, later], "mydir/f1-1.txt")

    def test_error_after_match_not_consulted(self, basic_fs, failing_fs):
        """Test that backends after the owner are never queried."""
        resolve([basic_fs("1", "1"), failing_fs], "mydir/f1-1.txt")
        assert failing_fs.calls == 0

    def test_lstat_used_when_supported(self):
        """Test that lstat_if_possible is used when the backend offers it."""
        fs = LstatMemoryFS()
        fs.write_file("a.txt", b"a")

        found = resolve([fs], "a.txt", lstat_if_possible=True)
        assert found.lstat_used is True
        assert fs.lstat_calls == 1

    def test_lstat_falls_back_to_stat(self):
        """Test that backends without lstat are queried with stat."""
        plain, lstater = MemoryFS(), LstatMemoryFS()
        plain.write_file("a.txt", b"a")
        lstater.write_file("b.txt", b"b")

        found = resolve([plain, lstater], "a.txt", lstat_if_possible=True)
        assert found.fs is plain
        assert found.lstat_used is False
        assert lstater.lstat_calls == 0

        found = resolve([plain, lstater], "b.txt", lstat_if_possible=True)
        assert found.lstat_used is True

    def test_lstat_not_requested(self):
        """Test that lstat is not used unless asked for."""
        fs = LstatMemoryFS()
        fs.write_file("a.txt", b"a")
        assert resolve([fs], "a.txt").lstat_used is False
        assert fs.lstat_calls == 0


# ---------------------------------------------------------------------------
# collect_dirs
# ---------------------------------------------------------------------------


class TestCollectDirs:
    """Test gathering every backend that owns a directory."""

    def test_collects_every_owner_in_order(self, basic_fs):
        """Test that all directory owners are returned in priority order."""
        fs1, fs2, fs3 = basic_fs("1", "1"), MemoryFS(), basic_fs("2", "2")
        assert collect_dirs([fs1, fs2, fs3], "mydir") == [fs1, fs3]

    def test_files_are_not_owners(self, basic_fs):
        """Test that a file at the path does not count as a directory."""
        fs1, fs2 = MemoryFS(), basic_fs("1", "1")
        fs1.write_file("mydir", b"not a dir")
        assert collect_dirs([fs1, fs2], "mydir") == [fs2]

    def test_nested_overlay_and_its_backends(self, basic_fs):
        """Test that a nested overlay is collected ahead of its backends."""
        fs1, fs2 = basic_fs("1", "1"), basic_fs("1", "2")
        fs3, fs4 = basic_fs("2", "3"), basic_fs("1", "4")
        inner = OverlayFS(Options(fss=(fs1, fs2)))

        assert collect_dirs([inner, fs3, fs4], "mydir") == [inner, fs1, fs2, fs3, fs4]

    def test_composite_with_own_directory(self):
        """Test that a composite holding the directory itself is collected."""
        comp = CompositeMemoryFS(MemoryFS())
        comp.write_file("own/a.txt", b"a")

        assert collect_dirs([comp], "own") == [comp]

    def test_composite_directory_lists_through_overlay(self):
        """Test that a directory only the composite holds can be listed."""
        sub = MemoryFS()
        sub.write_file("own/b.txt", b"b")
        comp = CompositeMemoryFS(sub)
        comp.write_file("own/a.txt", b"a")
        ofs = OverlayFS(Options(fss=(comp,)))

        assert ofs.stat("own").is_dir is True
        assert ofs.listdir("own") == ["a.txt", "b.txt"]

        empty = OverlayFS(Options(fss=(CompositeMemoryFS(MemoryFS()),)))
        empty.filesystem(0).write_file("own/a.txt", b"a")
        assert empty.listdir("own") == ["a.txt"]

    def test_empty_list(self):
        """Test that nothing is collected from empty backend lists."""
        assert collect_dirs([], "mydir") == []
        assert collect_dirs([OverlayFS()], "mydir") == []

    def test_error_aborts_collection(self, basic_fs, failing_fs):
        """Test that a non-missing-file error propagates."""
        with pytest.raises(OSError, match="stat error"):
            collect_dirs([basic_fs("1", "1"), failing_fs], "mydir")
