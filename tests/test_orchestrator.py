"""Tests for render orchestration, publishing and backend wiring.

WHY: The orchestrator decides whether a caller gets a stream or a URL,
and owns every temp directory a render creates. A missed fallback fails
an export that could have succeeded; a missed cleanup fills the disk.

HOW: Fake backends implement the FrameCompositor/SubtitleBurner
interfaces and record the workspace they were given, so the tests can
check it was removed afterwards. Sources are local files in tmp_path.
"""

from pathlib import Path

import pytest

from autocaption.render import orchestrator as orchestrator_module
from autocaption.render.base import (
    BackendConfigurationError,
    BundlingError,
    FrameCompositor,
    PublishedVideo,
    RenderedVideo,
    RenderError,
    RenderJob,
    SourcePreparationError,
    SubtitleBurner,
    TranscodeError,
)
from autocaption.render.orchestrator import RenderOrchestrator, build_orchestrator


class FakeCompositor(FrameCompositor):

    def __init__(self, fail_at=None):
        self.fail_at = fail_at
        self.workdirs = []

    def bundle(self, job, video_path, workdir):
        self.workdirs.append(Path(workdir))
        if self.fail_at == "bundle":
            raise BundlingError("bundler crashed")
        path = Path(workdir) / "composition.json"
        path.write_text("{}")
        return path

    def render(self, bundle_path, output_path):
        if self.fail_at == "render":
            raise RenderError("Compositor exited with code 1")
        Path(output_path).write_bytes(b"composited-mp4")
        return Path(output_path)


class FakeBurner(SubtitleBurner):

    def __init__(self, fail=False):
        self.fail = fail
        self.workdirs = []

    def burn(self, job, video_path, workdir):
        self.workdirs.append(Path(workdir))
        if self.fail:
            raise TranscodeError("ffmpeg exited with code 1", exit_code=1)
        out = Path(workdir) / "output.mp4"
        out.write_bytes(b"burned-mp4")
        return out


@pytest.fixture
def video(tmp_path):
    path = tmp_path / "source.mp4"
    path.write_bytes(b"source-video")
    return path


@pytest.fixture
def job(video, sample_captions):
    return RenderJob(captions=sample_captions, source=str(video))


def _orchestrator(tmp_path, compositor=None, burner=None):
    return RenderOrchestrator(
        burner=burner or FakeBurner(),
        compositor=compositor,
        exports_dir=tmp_path / "exports",
        url_prefix="/exports",
        keep_temp=False,
    )


class TestRenderStream:

    def test_returns_file_in_live_workspace(self, tmp_path, job):
        orch = _orchestrator(tmp_path, compositor=FakeCompositor())
        rendered = orch.render_stream(job)

        assert rendered.path.read_bytes() == b"composited-mp4"
        assert rendered.size == len(b"composited-mp4")
        rendered.workspace.cleanup()
        assert not rendered.workspace.path.exists()

    def test_failure_cleans_up(self, tmp_path, job):
        compositor = FakeCompositor(fail_at="render")
        orch = _orchestrator(tmp_path, compositor=compositor)

        with pytest.raises(RenderError):
            orch.render_stream(job)
        assert not compositor.workdirs[0].exists()

    def test_requires_compositor(self, tmp_path, job):
        with pytest.raises(BackendConfigurationError):
            _orchestrator(tmp_path).render_stream(job)

    def test_source_copied_before_bundling(self, tmp_path, job, video):
        compositor = FakeCompositor()
        orch = _orchestrator(tmp_path, compositor=compositor)
        rendered = orch.render_stream(job)
        assert (rendered.workspace.path / video.name).read_bytes() == b"source-video"
        rendered.workspace.cleanup()


class TestRenderPublished:

    def test_publishes_under_exports(self, tmp_path, job):
        burner = FakeBurner()
        orch = _orchestrator(tmp_path, burner=burner)
        published = orch.render_published(job)

        assert published.url.startswith("/exports/video-with-captions-")
        assert published.url.endswith(".mp4")
        assert published.path.parent == tmp_path / "exports"
        assert published.path.read_bytes() == b"burned-mp4"
        assert published.captions_processed == 2
        assert not burner.workdirs[0].exists()

    def test_names_are_unique_per_attempt(self, tmp_path, job):
        orch = _orchestrator(tmp_path)
        first = orch.render_published(job)
        second = orch.render_published(job)
        assert first.url != second.url

    def test_transcode_failure_cleans_up(self, tmp_path, job):
        burner = FakeBurner(fail=True)
        orch = _orchestrator(tmp_path, burner=burner)

        with pytest.raises(TranscodeError) as exc_info:
            orch.render_published(job)
        assert exc_info.value.exit_code == 1
        assert not burner.workdirs[0].exists()

    def test_missing_source(self, tmp_path, sample_captions):
        orch = _orchestrator(tmp_path)
        job = RenderJob(captions=sample_captions, source=str(tmp_path / "gone.mp4"))
        with pytest.raises(SourcePreparationError):
            orch.render_published(job)


class TestExportFallback:

    def test_prefers_stream(self, tmp_path, job):
        burner = FakeBurner()
        orch = _orchestrator(tmp_path, compositor=FakeCompositor(), burner=burner)
        result = orch.export(job)

        assert isinstance(result, RenderedVideo)
        assert burner.workdirs == []
        result.workspace.cleanup()

    @pytest.mark.parametrize("fail_at", ["bundle", "render"])
    def test_falls_back_to_url(self, tmp_path, job, fail_at):
        compositor = FakeCompositor(fail_at=fail_at)
        orch = _orchestrator(tmp_path, compositor=compositor)
        result = orch.export(job)

        assert isinstance(result, PublishedVideo)
        assert result.captions_processed == 2
        assert not compositor.workdirs[0].exists()

    def test_both_failing_raises_burn_error(self, tmp_path, job):
        orch = _orchestrator(
            tmp_path,
            compositor=FakeCompositor(fail_at="render"),
            burner=FakeBurner(fail=True),
        )
        with pytest.raises(TranscodeError):
            orch.export(job)

    def test_without_compositor_goes_straight_to_url(self, tmp_path, job):
        result = _orchestrator(tmp_path).export(job)
        assert isinstance(result, PublishedVideo)


class TestBuildOrchestrator:

    def test_unknown_backend(self, tmp_path):
        with pytest.raises(BackendConfigurationError, match="Unknown render backend"):
            build_orchestrator(["subtitle_burn", "gpu_magic"], exports_dir=tmp_path)

    def test_subtitle_burn_required(self, tmp_path):
        with pytest.raises(BackendConfigurationError, match="subtitle_burn"):
            build_orchestrator(["frame_composite"], exports_dir=tmp_path)

    def test_missing_ffmpeg(self, tmp_path, monkeypatch):
        monkeypatch.setattr(orchestrator_module.shutil, "which", lambda name: None)
        with pytest.raises(BackendConfigurationError, match="ffmpeg"):
            build_orchestrator(["subtitle_burn"], exports_dir=tmp_path)

    def test_missing_moviepy(self, tmp_path, monkeypatch):
        monkeypatch.setattr(orchestrator_module.shutil, "which", lambda name: "/usr/bin/ffmpeg")
        monkeypatch.setattr(orchestrator_module.importlib.util, "find_spec", lambda name: None)
        with pytest.raises(BackendConfigurationError, match="moviepy"):
            build_orchestrator(["frame_composite", "subtitle_burn"], exports_dir=tmp_path)

    def test_wires_both_backends(self, tmp_path, monkeypatch):
        monkeypatch.setattr(orchestrator_module.shutil, "which", lambda name: "/usr/bin/ffmpeg")
        monkeypatch.setattr(orchestrator_module.importlib.util, "find_spec", lambda name: object())
        orch = build_orchestrator(["frame_composite", "subtitle_burn"], exports_dir=tmp_path)
        assert orch.backends == ["frame_composite", "subtitle_burn"]

    def test_burn_only(self, tmp_path, monkeypatch):
        monkeypatch.setattr(orchestrator_module.shutil, "which", lambda name: "/usr/bin/ffmpeg")
        orch = build_orchestrator(["subtitle_burn"], exports_dir=tmp_path)
        assert orch.backends == ["subtitle_burn"]
        assert orch.compositor is None
