"""Tests for path classification."""
import pytest
from pathlib import Path

from mediatidy.core.config import RunContext
from mediatidy.core.models import MediaKind
from mediatidy.engines.classifier import PathClassifier, classify, is_excluded


@pytest.fixture
def source(tmp_path: Path) -> Path:
    src = tmp_path / "src"
    src.mkdir()
    return src


def context(source: Path, **kwargs) -> RunContext:
    return RunContext.create(source_dir=source, dest_dir=source.parent / "dst", **kwargs)


class TestBuiltinTables:
    """Classification without custom extensions."""

    @pytest.mark.parametrize("name", ["a.jpg", "b.JPEG", "c.heic", "d.CR2"])
    def test_photos(self, source, name):
        result = classify(source / name, context(source))
        assert result.in_scope
        assert result.kind == MediaKind.PHOTO

    @pytest.mark.parametrize("name", ["a.mp4", "b.MOV", "c.mkv"])
    def test_videos(self, source, name):
        result = classify(source / name, context(source))
        assert result.in_scope
        assert result.kind == MediaKind.VIDEO

    @pytest.mark.parametrize("name", ["notes.txt", "archive.zip", "README"])
    def test_out_of_scope(self, source, name):
        assert not classify(source / name, context(source)).in_scope


class TestCustomExtensions:
    """Custom extensions replace the built-in scope."""

    def test_custom_type_applies(self, source):
        ctx = context(source, custom_extensions="pdf|txt", custom_media_type="documents")
        result = classify(source / "scan.PDF", ctx)

        assert result.in_scope
        assert result.kind == MediaKind.CUSTOM

    def test_custom_type_matching_enum(self, source):
        ctx = context(source, custom_extensions="pdf", custom_media_type="document")
        assert classify(source / "a.pdf", ctx).kind == MediaKind.DOCUMENT

    def test_builtin_not_in_scope_with_custom_list(self, source):
        ctx = context(source, custom_extensions="pdf")
        assert not classify(source / "a.jpg", ctx).in_scope

    def test_no_type_uses_builtin_kind(self, source):
        ctx = context(source, custom_extensions="jpg|pdf")

        assert classify(source / "a.jpg", ctx).kind == MediaKind.PHOTO
        assert classify(source / "a.pdf", ctx).kind == MediaKind.UNKNOWN


class TestExcludes:
    """Exclude patterns are plain case-sensitive substrings."""

    def test_excluded_by_substring(self, source):
        ctx = context(source, exclude_patterns="Trash|.cache")
        classifier = PathClassifier(ctx)

        assert not classifier.classify(source / "Trash" / "a.jpg").in_scope
        assert not classifier.classify(source / "x.cache" / "b.jpg").in_scope
        assert classifier.classify(source / "trash" / "c.jpg").in_scope

    def test_is_excluded(self):
        assert is_excluded(Path("/a/tmp/b.jpg"), ("tmp",))
        assert not is_excluded(Path("/a/b.jpg"), ())
