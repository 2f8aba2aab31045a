"""Integration tests for end-to-end publish workflows.

These tests verify that all components work together correctly:
- Build directory -> collect -> publish -> sync
- Config-driven runs from a YAML workflow file
- Re-publishing an unchanged build
- Workflow types running publish and sync in order
"""

from dataclasses import replace
from pathlib import Path

import pytest

from conftest import NOW, FakeBackend, remote
from gcs_publish.errors import ConfigurationError
from gcs_publish.publisher import Publisher
from gcs_publish.syncer import sync
from gcs_publish.utils.config_loader import WORKFLOW_STEPS, resolve_workflow
from gcs_publish.utils.files import collect_files, md5_hash
from gcs_publish.workflow import run_workflow


class RecordingBackend(FakeBackend):
    """FakeBackend whose uploads update the stored hashes."""

    def upload(self, local_path, key, metadata, public=False):
        super().upload(local_path, key, metadata, public)
        self.hashes[key] = md5_hash(Path(local_path).read_bytes())


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    """A small static-site build."""
    dist = tmp_path / "dist"
    (dist / "css").mkdir(parents=True)
    (dist / "js").mkdir()
    (dist / "index.html").write_bytes(b"<html><body>hi</body></html>")
    (dist / "css" / "Site.css.br").write_bytes(b"\x1b\x00compressed-css")
    (dist / "js" / "app.js.br").write_bytes(b"\x1b\x00compressed-js")
    return dist


class TestPublishThenSync:
    def test_first_publish_uploads_everything(self, config, build_dir):
        backend = RecordingBackend()

        report = Publisher(config, backend=backend).run(collect_files(build_dir))

        assert sorted(report.uploaded) == ["css/site.css.br", "index.html", "js/app.js.br"]
        by_key = {u["key"]: u for u in backend.uploads}
        assert by_key["css/site.css.br"]["metadata"]["contentType"] == "text/css"
        assert by_key["css/site.css.br"]["metadata"]["contentEncoding"] == "br"
        assert by_key["index.html"]["metadata"] == {"contentType": "text/html"}

    def test_republishing_unchanged_build_skips_everything(self, config, build_dir):
        backend = RecordingBackend()
        Publisher(config, backend=backend).run(collect_files(build_dir))

        report = Publisher(config, backend=backend).run(collect_files(build_dir))

        assert report.uploaded == []
        assert len(report.skipped) == 3
        assert len(backend.uploads) == 3

    def test_changed_file_is_the_only_upload(self, config, build_dir):
        backend = RecordingBackend()
        Publisher(config, backend=backend).run(collect_files(build_dir))
        (build_dir / "index.html").write_bytes(b"<html><body>changed</body></html>")

        report = Publisher(config, backend=backend).run(collect_files(build_dir))

        assert report.uploaded == ["index.html"]

    def test_sync_removes_old_objects_from_previous_builds(self, config, build_dir):
        backend = FakeBackend(
            objects=[
                remote("index.html", 30),
                remote("js/app.js.br", 30),
                remote("css/site.css.br", 30),
                remote("js/app.1234.js.br", 30),
                remote("js/app.5678.js.br", 2),
            ]
        )

        report = sync(replace(config, max_workers=4), collect_files(build_dir), backend=backend, now=lambda: NOW)

        assert backend.deletes == ["js/app.1234.js.br"]
        assert sorted(report.kept) == [
            "css/site.css.br",
            "index.html",
            "js/app.5678.js.br",
            "js/app.js.br",
        ]


class TestWorkflowFile:
    def test_simulated_publish_from_yaml(self, tmp_path, build_dir, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config_file = tmp_path / "publish.yaml"
        config_file.write_text(
            f"""
version: "1.0"
workflow: publish
gcs:
  bucket: static-site-assets
  key_filename: /secrets/publisher.json
  project_id: my-project
source:
  base_dir: {build_dir.as_posix()}
  patterns: ["**/*.br"]
publish:
  metadata:
    cacheControl: "public, max-age=300"
options:
  simulate: true
  max_workers: 2
"""
        )

        config, workflow = resolve_workflow(config_file)
        source = workflow["source"]
        backend = FakeBackend()

        report = Publisher(config, backend=backend).run(
            collect_files(source["base_dir"], source["patterns"])
        )

        assert sorted(report.simulated) == ["css/site.css.br", "js/app.js.br"]
        assert backend.uploads == []
        assert config.metadata == {"cacheControl": "public, max-age=300"}


class TestRunWorkflow:
    """Tests for run_workflow step orchestration."""

    def test_publish_and_sync_runs_both_steps_in_order(self, config, build_dir):
        backend = RecordingBackend(
            objects=[
                remote("index.html", 30),
                remote("js/app.1234.js.br", 30),
            ]
        )

        result = run_workflow(
            config, str(build_dir), WORKFLOW_STEPS["publish_and_sync"], backend=backend, now=lambda: NOW
        )

        assert result.steps == ["publish", "sync"]
        assert len(result.publish.uploaded) == 3
        assert result.sync.deleted == ["js/app.1234.js.br"]
        assert result.success is True

    def test_sync_workflow_never_uploads(self, config, build_dir):
        backend = RecordingBackend(objects=[remote("old.txt", 30)])

        result = run_workflow(config, str(build_dir), ["sync"], backend=backend, now=lambda: NOW)

        assert result.steps == ["sync"]
        assert result.publish is None
        assert backend.uploads == []
        assert backend.deletes == ["old.txt"]

    def test_failed_upload_skips_sync(self, config, build_dir):
        backend = FakeBackend(objects=[remote("old.txt", 30)])
        backend.fail_upload = True

        result = run_workflow(config, str(build_dir), ["publish", "sync"], backend=backend, now=lambda: NOW)

        assert result.steps == ["publish"]
        assert result.sync is None
        assert result.sync_skipped is True
        assert result.success is False
        assert backend.list_calls == 0
        assert backend.deletes == []

    def test_unknown_step_rejected(self, config, build_dir, backend):
        with pytest.raises(ValueError, match="deploy"):
            run_workflow(config, str(build_dir), ["publish", "deploy"], backend=backend)

        assert backend.calls == 0

    def test_missing_configuration_before_any_call(self, config, build_dir, backend):
        with pytest.raises(ConfigurationError, match="bucket"):
            run_workflow(replace(config, bucket=""), str(build_dir), backend=backend)

        assert backend.calls == 0
