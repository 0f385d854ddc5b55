"""Tests for the command-line interface.

WHY: The CLI is the scripting entry point. Argument parsing, captions
file loading and exit codes must be predictable for shell scripts.

HOW: build_parser() is inspected directly. run_render is driven through
main() with build_orchestrator patched to return an orchestrator wired
with fake backends; the provider client is patched for `captions`.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from autocaption.api.client import TranscriptionError
from autocaption.cli import build_parser, load_captions, main
from autocaption.core.captions import Caption
from autocaption.render.base import FrameCompositor, RenderError, SubtitleBurner
from autocaption.render.orchestrator import RenderOrchestrator


class _Compositor(FrameCompositor):

    def __init__(self, fail=False):
        self.fail = fail

    def bundle(self, job, video_path, workdir):
        return Path(workdir) / "composition.json"

    def render(self, bundle_path, output_path):
        if self.fail:
            raise RenderError("boom")
        Path(output_path).write_bytes(b"composited")
        return Path(output_path)


class _Burner(SubtitleBurner):

    def burn(self, job, video_path, workdir):
        out = Path(workdir) / "output.mp4"
        out.write_bytes(b"burned")
        return out


@pytest.fixture
def captions_json(tmp_path, sample_captions):
    path = tmp_path / "captions.json"
    path.write_text(json.dumps([c.to_dict() for c in sample_captions]), encoding="utf-8")
    return path


@pytest.fixture
def video(tmp_path):
    path = tmp_path / "source.mp4"
    path.write_bytes(b"source-video")
    return path


def _patched_orchestrator(tmp_path, compositor):
    orch = RenderOrchestrator(
        burner=_Burner(),
        compositor=compositor,
        exports_dir=tmp_path / "exports",
        keep_temp=False,
    )
    return patch("autocaption.cli.build_orchestrator", return_value=orch)


class TestParser:

    def test_render_defaults(self):
        args = build_parser().parse_args(["render", "/v.mp4", "c.json"])
        assert args.mode == "auto"
        assert args.style == "bottom"
        assert (args.fps, args.width, args.height) == (30, 1280, 720)
        assert args.strict is False

    def test_captions_format_choices(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["captions", "in.mp4", "--format", "docx"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestLoadCaptions:

    def test_json_list(self, captions_json, sample_captions):
        assert load_captions(captions_json) == sample_captions

    def test_json_response_body(self, tmp_path):
        path = tmp_path / "resp.json"
        path.write_text(json.dumps({"captions": [{"text": "Hi", "start": 0, "end": 1}]}))
        assert load_captions(path) == [Caption(text="Hi", start=0.0, end=1.0)]

    def test_srt(self, tmp_path):
        path = tmp_path / "c.srt"
        path.write_text("1\n00:00:00,500 --> 00:00:01,000\nHi\n", encoding="utf-8")
        assert load_captions(path) == [Caption(text="Hi", start=0.5, end=1.0)]

    def test_malformed(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([{"text": "no times"}]))
        with pytest.raises(ValueError):
            load_captions(path)


class TestRenderCommand:

    def test_stream_output_written(self, tmp_path, video, captions_json):
        out = tmp_path / "out.mp4"
        with _patched_orchestrator(tmp_path, _Compositor()):
            code = main(["render", str(video), str(captions_json), "-o", str(out)])
        assert code == 0
        assert out.read_bytes() == b"composited"

    def test_auto_falls_back_to_url(self, tmp_path, video, captions_json, capsys):
        with _patched_orchestrator(tmp_path, _Compositor(fail=True)):
            code = main(["render", str(video), str(captions_json)])
        assert code == 0
        assert "Published: /exports/video-with-captions-" in capsys.readouterr().err

    def test_stream_mode_does_not_fall_back(self, tmp_path, video, captions_json):
        with _patched_orchestrator(tmp_path, _Compositor(fail=True)):
            code = main(["render", str(video), str(captions_json), "--mode", "stream"])
        assert code == 1

    def test_strict_rejects_invalid(self, tmp_path, video):
        path = tmp_path / "c.json"
        path.write_text(json.dumps([{"text": "", "start": 0, "end": 1}]))
        with _patched_orchestrator(tmp_path, _Compositor()) as build:
            code = main(["render", str(video), str(path), "--strict"])
        assert code == 1
        build.assert_not_called()


class TestCaptionsCommand:

    def test_writes_srt(self, tmp_path, video, sample_transcript):
        out = tmp_path / "out.srt"

        async def fake_transcribe(input_path):
            return "https://cdn.test/u", sample_transcript

        with patch("autocaption.cli._transcribe", new=fake_transcribe):
            code = main(["captions", str(video), "--format", "srt", "-o", str(out)])

        assert code == 0
        assert out.read_text(encoding="utf-8").startswith("1\n00:00:00,120 --> 00:00:01,490\n")

    def test_provider_error_exits_1(self, tmp_path, video):
        async def failing(path):
            raise TranscriptionError("Transcript error: bad media")

        with patch("autocaption.cli._transcribe", new=failing):
            assert main(["captions", str(video)]) == 1

    def test_missing_file_exits_1(self, tmp_path):
        assert main(["captions", str(tmp_path / "nope.mp4")]) == 1
