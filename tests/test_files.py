"""Tests for input file records, key normalization and hashing."""

import base64
import hashlib

import pytest

from gcs_publish.utils.files import InputFile, collect_files, md5_hash, normalized_path


class TestNormalizedPath:
    """Test object key derivation."""

    def test_strips_base_and_leading_slash(self):
        file = InputFile(path="/build/dist/css/app.css", base="/build/dist", contents=b"")
        assert normalized_path(file) == "css/app.css"

    def test_lower_cases_key(self):
        file = InputFile(path="/build/dist/Images/Logo.SVG", base="/build/dist", contents=b"")
        assert normalized_path(file) == "images/logo.svg"

    def test_keeps_leading_slash_when_requested(self):
        file = InputFile(path="/build/dist/index.html", base="/build/dist", contents=b"")
        assert normalized_path(file, strip_leading_slash=False) == "/index.html"

    def test_base_with_trailing_slash(self):
        file = InputFile(path="/build/dist/index.html", base="/build/dist/", contents=b"")
        assert normalized_path(file) == "index.html"

    def test_strips_exactly_one_slash(self):
        file = InputFile(path="/build/dist//nested/a.js", base="/build/dist", contents=b"")
        assert normalized_path(file) == "/nested/a.js"

    def test_path_equal_to_base_is_empty(self):
        file = InputFile(path="/build/dist", base="/build/dist", contents=b"")
        assert normalized_path(file) == ""

    def test_idempotent_on_normalized_key(self):
        file = InputFile(path="/build/dist/A/B.txt", base="/build/dist", contents=b"")
        key = normalized_path(file)
        again = InputFile(path=key, base="", contents=b"")
        assert normalized_path(again) == key

    def test_key_property(self):
        file = InputFile(path="/build/dist/App.js", base="/build/dist", contents=b"")
        assert file.key == "app.js"


class TestInputFile:
    def test_null_without_contents(self):
        assert InputFile(path="/a", base="/").is_null() is True

    def test_not_null_with_empty_contents(self):
        assert InputFile(path="/a", base="/", contents=b"").is_null() is False

    def test_stream_is_not_null(self):
        assert InputFile(path="/a", base="/", is_stream=True).is_null() is False

    def test_repr_omits_contents(self):
        file = InputFile(path="/dist/app.js", base="/dist", contents=b"x" * 100_000)

        text = repr(file)

        assert "/dist/app.js" in text
        assert "contents" not in text
        assert len(text) < 200


class TestMd5Hash:
    def test_matches_gcs_md5_format(self):
        contents = b"body { color: red; }"
        expected = base64.b64encode(hashlib.md5(contents).digest()).decode("ascii")
        assert md5_hash(contents) == expected

    def test_empty_contents(self):
        assert md5_hash(b"") == "1B2M2Y8AsgTpgAmY7PhCfg=="

    def test_differs_for_different_contents(self):
        assert md5_hash(b"a") != md5_hash(b"b")


class TestCollectFiles:
    """Test collecting InputFiles from a build directory."""

    def test_collects_all_files(self, tmp_path):
        (tmp_path / "css").mkdir()
        (tmp_path / "css" / "App.css").write_bytes(b"body{}")
        (tmp_path / "index.html").write_bytes(b"<html></html>")

        files = list(collect_files(tmp_path))

        keys = sorted(f.key for f in files)
        assert keys == ["css/app.css", "index.html"]
        by_key = {f.key: f for f in files}
        assert by_key["index.html"].contents == b"<html></html>"
        assert by_key["index.html"].base == tmp_path.resolve().as_posix()

    def test_patterns_filter_and_deduplicate(self, tmp_path):
        (tmp_path / "app.js.br").write_bytes(b"js")
        (tmp_path / "app.css.br").write_bytes(b"css")
        (tmp_path / "readme.txt").write_bytes(b"txt")

        files = list(collect_files(tmp_path, ["*.br", "app.js.*"]))

        assert sorted(f.key for f in files) == ["app.css.br", "app.js.br"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            list(collect_files(tmp_path / "missing"))

    def test_not_a_directory(self, tmp_path):
        target = tmp_path / "file.txt"
        target.write_bytes(b"x")
        with pytest.raises(NotADirectoryError):
            list(collect_files(target))
