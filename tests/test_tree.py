"""Tests for copy, delete, structure comparison and digest of directory trees."""

from __future__ import annotations

import hashlib
import io
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from backup_util import tree
from backup_util.directory import Directory
from backup_util.errors import DirectoryNotFoundError
from backup_util.tree import CopyOptions
from backup_util.visitor import ProgressVisitor, SimplePathVisitor, VisitResult


def _make_tree(root: Path) -> Path:
    (root / "sub").mkdir(parents=True)
    (root / "file1.txt").write_text("first file")
    (root / "sub" / "file2.txt").write_text("second file")
    return root


@pytest.fixture
def source(tmp_path: Path) -> Path:
    """Create a populated source tree."""
    return _make_tree(tmp_path / "source")


@pytest.fixture
def target(tmp_path: Path) -> Path:
    """Create an empty target directory."""
    path = tmp_path / "target"
    path.mkdir()
    return path


class TestCopy:
    """Tests for recursive copy."""

    def test_copies_files(self, source: Path, target: Path) -> None:
        """Test that every file ends up at its relative location."""
        tree.copy(Directory.get(source), Directory.get(target))

        assert (target / "file1.txt").read_text() == "first file"
        assert (target / "sub" / "file2.txt").read_text() == "second file"

    def test_creates_missing_target_parents(self, source: Path, tmp_path: Path) -> None:
        """Test that the target and its missing parents are created."""
        destination = tmp_path / "deep" / "er" / "target"
        tree.copy(source, destination)

        assert (destination / "sub" / "file2.txt").exists()

    def test_copies_empty_directories(self, source: Path, target: Path) -> None:
        """Test that empty directories are mirrored too."""
        (source / "empty").mkdir()
        tree.copy(source, target)

        assert (target / "empty").is_dir()

    def test_symlink_to_directory_becomes_directory(self, source: Path, target: Path) -> None:
        """Test that a link to a directory is copied as a directory."""
        (source / "link").symlink_to(source / "sub", target_is_directory=True)

        tree.copy(source, target)

        assert (target / "link").is_dir()
        assert not (target / "link").is_symlink()
        assert tree.is_structure_same(source, target)

    def test_symlink_to_directory_kept_as_link(self, source: Path, target: Path) -> None:
        """Test that links are recreated when symlinks are not followed."""
        (source / "link").symlink_to("sub", target_is_directory=True)

        tree.copy(source, target, options=CopyOptions(follow_symlinks=False))

        assert (target / "link").is_symlink()
        assert os.readlink(target / "link") == "sub"

    def test_directories_created_before_children(self, source: Path, target: Path) -> None:
        """Test pre-order creation: the target directory exists when a directory is entered."""
        seen: list[bool] = []

        class Checker(SimplePathVisitor):
            def pre_visit_directory(self, path: Path, attrs: os.stat_result) -> VisitResult:
                seen.append((target / path.relative_to(source)).is_dir())
                return VisitResult.CONTINUE

        tree.copy(source, target, Checker())

        assert seen == [True, True]

    def test_visitor_can_skip_subtree(self, source: Path, target: Path) -> None:
        """Test that SKIP_SUBTREE leaves the subtree uncopied."""

        class SkipSub(SimplePathVisitor):
            def pre_visit_directory(self, path: Path, attrs: os.stat_result) -> VisitResult:
                return VisitResult.SKIP_SUBTREE if path.name == "sub" else VisitResult.CONTINUE

        tree.copy(source, target, SkipSub())

        assert (target / "file1.txt").exists()
        assert not (target / "sub" / "file2.txt").exists()

    def test_existing_file_is_not_replaced_by_default(self, source: Path, target: Path) -> None:
        """Test that copying over an existing file fails without replace_existing."""
        (target / "file1.txt").write_text("keep me")

        with pytest.raises(FileExistsError):
            tree.copy(source, target)

        assert (target / "file1.txt").read_text() == "keep me"

    def test_replace_existing(self, source: Path, target: Path) -> None:
        """Test that replace_existing overwrites files."""
        (target / "file1.txt").write_text("old")

        tree.copy(source, target, options=CopyOptions(replace_existing=True))

        assert (target / "file1.txt").read_text() == "first file"

    def test_copy_attributes_preserves_mtime(self, source: Path, target: Path) -> None:
        """Test that copy_attributes keeps modification times."""
        os.utime(source / "file1.txt", (1_000_000, 1_000_000))

        tree.copy(source, target, options=CopyOptions(copy_attributes=True))

        assert (target / "file1.txt").stat().st_mtime == 1_000_000

    def test_partial_copy_is_kept(self, source: Path, target: Path) -> None:
        """Test that a terminated copy leaves copied entries in place."""

        class StopAfterFirstFile(SimplePathVisitor):
            def visit_file(self, path: Path, attrs: os.stat_result) -> VisitResult:
                return VisitResult.TERMINATE

        tree.copy(source, target, StopAfterFirstFile())

        assert (target / "file1.txt").exists()
        assert not (target / "sub" / "file2.txt").exists()

    def test_missing_source(self, tmp_path: Path, target: Path) -> None:
        """Test that a missing source raises DirectoryNotFoundError."""
        with pytest.raises(DirectoryNotFoundError):
            tree.copy(tmp_path / "missing", target)

    def test_copy_into_itself_rejected(self, source: Path) -> None:
        """Test that a target inside the source is refused."""
        with pytest.raises(ValueError, match="into itself"):
            tree.copy(source, source / "sub" / "copy")

    def test_progress_visitor_counts(self, source: Path, target: Path) -> None:
        """Test that the progress visitor sees each copied file."""
        progress = ProgressVisitor("copied")
        tree.copy(source, target, progress)

        assert progress.files == 2
        assert progress.directories == 2


class TestDelete:
    """Tests for recursive delete."""

    def test_deletes_tree(self, source: Path) -> None:
        """Test that the whole tree including the root disappears."""
        tree.delete(Directory.get(source))
        assert not source.exists()

    def test_can_delete_nonexistent_directory(self, source: Path) -> None:
        """Test that deleting twice is a no-op the second time."""
        tree.delete(source)
        tree.delete(source)
        assert not source.exists()

    def test_hooks_run_after_removal(self, source: Path) -> None:
        """Test post-order: hooks observe already removed entries."""
        observed: list[tuple[str, bool]] = []

        class Observer(SimplePathVisitor):
            def visit_file(self, path: Path, attrs: os.stat_result) -> VisitResult:
                observed.append((path.name, path.exists()))
                return VisitResult.CONTINUE

            def post_visit_directory(self, path: Path, exc: OSError | None) -> VisitResult:
                observed.append((path.name, path.exists()))
                return VisitResult.CONTINUE

        tree.delete(source, Observer())

        assert observed == [
            ("file1.txt", False),
            ("file2.txt", False),
            ("sub", False),
            ("source", False),
        ]

    def test_file_failure_goes_to_visitor(self, source: Path) -> None:
        """Test that a file removal failure is routed to visit_file_failed."""
        original_unlink = Path.unlink

        def failing_unlink(self: Path, missing_ok: bool = False) -> None:
            if self.name == "file1.txt":
                raise PermissionError("denied")
            original_unlink(self, missing_ok)

        class StopOnFailure(SimplePathVisitor):
            def __init__(self) -> None:
                self.failed: list[Path] = []

            def visit_file_failed(self, path: Path, exc: OSError) -> VisitResult:
                self.failed.append(path)
                return VisitResult.TERMINATE

        visitor = StopOnFailure()
        with patch.object(Path, "unlink", failing_unlink):
            tree.delete(source, visitor)

        assert visitor.failed == [source / "file1.txt"]
        assert (source / "file1.txt").exists()

    def test_file_failure_raises_with_default_visitor(self, source: Path) -> None:
        """Test that the default visitor propagates file removal failures."""

        def failing_unlink(self: Path, missing_ok: bool = False) -> None:
            raise PermissionError("denied")

        with patch.object(Path, "unlink", failing_unlink), pytest.raises(PermissionError):
            tree.delete(source)

    def test_tolerated_file_failure_then_directory_failure(self, source: Path) -> None:
        """Test that a directory that cannot be removed is a hard error."""
        original_unlink = Path.unlink

        def failing_unlink(self: Path, missing_ok: bool = False) -> None:
            if self.name == "file2.txt":
                raise PermissionError("denied")
            original_unlink(self, missing_ok)

        progress = ProgressVisitor("deleted", tolerate_failures=True)
        with patch.object(Path, "unlink", failing_unlink), pytest.raises(OSError):
            tree.delete(source, progress)

        assert [p for p, _ in progress.failures] == [source / "sub" / "file2.txt"]
        assert not (source / "file1.txt").exists()

    def test_delete_single_file(self, source: Path) -> None:
        """Test that a file root is removed as a file."""
        tree.delete(source / "file1.txt")
        assert not (source / "file1.txt").exists()


class TestIsStructureSame:
    """Tests for structural comparison."""

    def test_differs_from_empty_in_both_directions(self, source: Path, target: Path) -> None:
        """Test that a populated tree differs from an empty one either way."""
        assert not tree.is_structure_same(Directory.get(source), Directory.get(target))
        assert not tree.is_structure_same(Directory.get(target), Directory.get(source))

    def test_same_after_copy(self, source: Path, target: Path) -> None:
        """Test that a copy has the same structure as its source."""
        tree.copy(source, target)
        assert tree.is_structure_same(source, target)

    def test_contents_are_ignored(self, tmp_path: Path) -> None:
        """Test that only names and nesting matter."""
        first = _make_tree(tmp_path / "first")
        second = _make_tree(tmp_path / "second")
        (second / "file1.txt").write_text("completely different and longer")

        assert tree.is_structure_same(first, second)

    def test_nesting_matters(self, tmp_path: Path) -> None:
        """Test that the same names at different depths differ."""
        first = tmp_path / "first"
        (first / "a").mkdir(parents=True)
        (first / "a" / "x").write_text("")
        second = tmp_path / "second"
        (second / "a").mkdir(parents=True)
        (second / "x").write_text("")

        assert not tree.is_structure_same(first, second)

    def test_visitor_can_prune_comparison(self, source: Path, target: Path) -> None:
        """Test that a pruned subtree is left out of the comparison."""
        tree.copy(source, target)
        (source / "sub" / "extra.txt").write_text("only in source")

        class SkipSub(SimplePathVisitor):
            def pre_visit_directory(self, path: Path, attrs: os.stat_result) -> VisitResult:
                return VisitResult.SKIP_SUBTREE if path.name == "sub" else VisitResult.CONTINUE

        assert not tree.is_structure_same(source, target)
        assert tree.is_structure_same(source, target, SkipSub())


class TestDigest:
    """Tests for tree and stream digests."""

    def test_digest_differs_between_trees(self, source: Path, target: Path) -> None:
        """Test that different trees produce different digests."""
        md1 = tree.digest(Directory.get(source), "md5")
        md2 = tree.digest(Directory.get(target), "md5")
        assert md1 != md2

    def test_digest_is_deterministic(self, source: Path) -> None:
        """Test that repeated digests of an unchanged tree agree."""
        assert tree.digest(source) == tree.digest(source)

    def test_digest_changes_with_content(self, source: Path) -> None:
        """Test that editing a file changes the digest."""
        before = tree.digest(source)
        (source / "sub" / "file2.txt").write_text("second file!")
        assert tree.digest(source) != before

    def test_digest_changes_with_new_empty_directory(self, source: Path) -> None:
        """Test that directories contribute their path."""
        before = tree.digest(source)
        (source / "empty").mkdir()
        assert tree.digest(source) != before

    def test_digest_matches_documented_algorithm(self, tmp_path: Path) -> None:
        """Test the exact byte sequence: component-ordered paths, each followed by file content."""
        root = tmp_path / "root"
        (root / "a").mkdir(parents=True)
        (root / "a" / "x").write_bytes(b"inner")
        (root / "a.b").write_bytes(b"outer")

        expected = hashlib.sha256()
        expected.update((root / "a").as_posix().encode())
        expected.update((root / "a" / "x").as_posix().encode())
        expected.update(b"inner")
        expected.update((root / "a.b").as_posix().encode())
        expected.update(b"outer")

        assert tree.digest(root, "sha256") == expected.digest()

    def test_digest_accepts_hash_object(self, source: Path) -> None:
        """Test that a hash object can be supplied instead of a name."""
        assert tree.digest(source, hashlib.sha1()) == tree.digest(source, "sha1")

    def test_unknown_algorithm(self, source: Path) -> None:
        """Test that an unknown algorithm name raises ValueError."""
        with pytest.raises(ValueError):
            tree.digest(source, "no-such-hash")

    def test_missing_tree(self, tmp_path: Path) -> None:
        """Test that digesting a missing tree raises DirectoryNotFoundError."""
        with pytest.raises(DirectoryNotFoundError):
            tree.digest(tmp_path / "missing")


class TestDigestStream:
    """Tests for digesting byte streams."""

    def test_matches_hashlib(self) -> None:
        """Test that the stream digest equals a one-shot hash."""
        data = os.urandom(200_000)
        assert tree.digest_stream(io.BytesIO(data), "sha256", chunk_size=1024) == hashlib.sha256(data).digest()

    def test_stream_closed_after_success(self) -> None:
        """Test that the stream is closed once consumed."""
        stream = io.BytesIO(b"payload")
        tree.digest_stream(stream)
        assert stream.closed

    def test_stream_closed_after_failure(self) -> None:
        """Test that the stream is closed when reading fails."""

        class BrokenStream(io.BytesIO):
            def read(self, size: int | None = -1) -> bytes:
                raise OSError("read failed")

        stream = BrokenStream(b"payload")
        with pytest.raises(OSError, match="read failed"):
            tree.digest_stream(stream)
        assert stream.closed

    def test_empty_stream(self) -> None:
        """Test that an empty stream hashes to the empty digest."""
        assert tree.digest_stream(io.BytesIO(b""), "md5") == hashlib.md5(b"").digest()
