"""Command-line interface for autocaption.

WHY: Captioning and rendering are useful without the HTTP server: batch
scripts, quick checks on a single file, and running the API itself.
The CLI wires the same pipeline the server uses behind three commands.

HOW: argparse with subcommands:
  captions: transcribe a media file and write captions as JSON, SRT or VTT
  render:   render a captioned MP4 from a video source and a captions file
  serve:    run the FastAPI app with uvicorn
Status messages go to stderr so stdout can be piped.

RULES:
- Captions files are read as JSON ([{text, start, end}, ...]) or SRT
- --strict rejects captions with empty text or invalid ranges before rendering
- render --mode auto tries the frame compositor first and falls back to
  subtitle burn; stream and url force a single path
- Exit code 0 on success, 1 on any handled failure
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import shutil
import sys
from pathlib import Path
from typing import List, Optional

import httpx

from autocaption.api.client import (
    AssemblyAIClient,
    PollTimeoutError,
    TranscriptionAPIError,
    TranscriptionError,
)
from autocaption.config import DEFAULT_FPS, DEFAULT_HEIGHT, DEFAULT_WIDTH
from autocaption.core.captions import (
    Caption,
    captions_from_dicts,
    detect_language,
    invalid_caption_indices,
)
from autocaption.core.segmenter import segment_transcript
from autocaption.formatters import FORMATTERS
from autocaption.formatters.subtitles import parse_srt
from autocaption.render.base import RenderedVideo, RenderJob, RenderStageError, RenderStyle
from autocaption.render.orchestrator import build_orchestrator

OUTPUT_FORMATS = ("json",) + tuple(sorted(FORMATTERS))


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> int:
    print("Error: {}".format(msg), file=sys.stderr)
    return 1


def load_captions(path: Path) -> List[Caption]:
    """Read captions from a .srt file or a JSON array of {text, start, end}.

    Raises:
        ValueError: when the file content cannot be interpreted as captions.
    """
    content = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".srt":
        return parse_srt(content)

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ValueError("{} is not valid JSON: {}".format(path, exc)) from exc

    # Accept the /captions response body as well as a bare list
    if isinstance(data, dict):
        data = data.get("captions")
    if not isinstance(data, list):
        raise ValueError("{} must contain a list of captions".format(path))

    try:
        return captions_from_dicts(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError("{} has a malformed caption: {}".format(path, exc)) from exc


def _write_captions(captions: List[Caption], fmt: str, output: Optional[Path], extra: dict) -> None:
    if fmt == "json":
        body = dict(extra)
        body["captions"] = [c.to_dict() for c in captions]
        content = json.dumps(body, ensure_ascii=False, indent=2) + "\n"
    else:
        content = FORMATTERS[fmt]().format(captions).content

    if output is None:
        sys.stdout.write(content)
        sys.stdout.flush()
    else:
        output.write_text(content, encoding="utf-8")
        _status("Saved: {}".format(output))


# ---------------------------------------------------------------------------
# captions
# ---------------------------------------------------------------------------


async def _transcribe(input_path: Path):
    async with AssemblyAIClient() as client:
        return await client.transcribe_file(input_path, on_status=_status)


def run_captions(args: argparse.Namespace) -> int:
    input_path = Path(args.input_file).resolve()
    if not input_path.is_file():
        return _fail("File not found: {}".format(input_path))

    try:
        upload_url, transcript = asyncio.run(_transcribe(input_path))
    except ValueError as exc:
        # Missing API key
        return _fail(str(exc))
    except (TranscriptionAPIError, TranscriptionError, PollTimeoutError, httpx.HTTPError) as exc:
        return _fail(str(exc))

    result = segment_transcript(transcript)
    _status("  {} captions ({})".format(len(result.captions), result.algorithm))

    language = transcript.language or detect_language(result.captions)
    output = Path(args.output) if args.output else None
    _write_captions(
        result.captions,
        args.format,
        output,
        extra={
            "language": language,
            "full_text": transcript.full_text,
            "upload_url": upload_url,
            "local_file_path": str(input_path),
            "algorithm": result.algorithm,
        },
    )
    return 0


# ---------------------------------------------------------------------------
# render
# ---------------------------------------------------------------------------


def run_render(args: argparse.Namespace) -> int:
    try:
        captions = load_captions(Path(args.captions))
    except (OSError, ValueError) as exc:
        return _fail(str(exc))

    if args.strict:
        invalid = invalid_caption_indices(captions)
        if invalid:
            return _fail(
                "Invalid captions at positions: {}".format(", ".join(str(i) for i in invalid))
            )

    job = RenderJob(
        captions=captions,
        source=args.video_source,
        style=RenderStyle(args.style),
        fps=args.fps,
        width=args.width,
        height=args.height,
    )

    output = Path(args.output).resolve()

    try:
        orchestrator = build_orchestrator()
        _status("Rendering {} captions ({})...".format(len(captions), args.mode))
        if args.mode == "stream":
            result = orchestrator.render_stream(job)
        elif args.mode == "url":
            result = orchestrator.render_published(job)
        else:
            result = orchestrator.export(job)
    except RenderStageError as exc:
        return _fail("{} failed: {}".format(exc.stage, exc.message))

    if isinstance(result, RenderedVideo):
        try:
            shutil.copyfile(str(result.path), str(output))
        except OSError as exc:
            return _fail("Could not write {}: {}".format(output, exc))
        finally:
            result.workspace.cleanup()
        _status("Saved: {} ({} bytes)".format(output, result.size))
    else:
        _status("Published: {} ({})".format(result.url, result.path))

    return 0


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


def run_serve(args: argparse.Namespace) -> int:
    from autocaption.server.app import run_api

    run_api(host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser; kept separate from main() for tests."""
    parser = argparse.ArgumentParser(
        prog="autocaption",
        description="Generate captions for videos and render captioned MP4s.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_captions = sub.add_parser("captions", help="Transcribe a media file into captions.")
    p_captions.add_argument("input_file", help="Path to the video or audio file.")
    p_captions.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="json",
        help="Output format (default: %(default)s).",
    )
    p_captions.add_argument(
        "-o", "--output",
        default=None,
        help="Write to this file instead of stdout.",
    )
    p_captions.set_defaults(func=run_captions)

    p_render = sub.add_parser("render", help="Render captions into a video.")
    p_render.add_argument(
        "video_source",
        help="http(s) URL, absolute path, or file:// URI of the input video.",
    )
    p_render.add_argument("captions", help="Captions file (.json or .srt).")
    p_render.add_argument(
        "-o", "--output",
        default="video-with-captions.mp4",
        help="Output path for streamed renders (default: %(default)s).",
    )
    p_render.add_argument(
        "--mode",
        choices=("auto", "stream", "url"),
        default="auto",
        help="auto: frame composite with subtitle-burn fallback; "
             "stream: frame composite only; url: subtitle burn only.",
    )
    p_render.add_argument(
        "--style",
        choices=[s.value for s in RenderStyle],
        default=RenderStyle.BOTTOM.value,
        help="Caption style for the frame compositor (default: %(default)s).",
    )
    p_render.add_argument("--fps", type=int, default=DEFAULT_FPS)
    p_render.add_argument("--width", type=int, default=DEFAULT_WIDTH)
    p_render.add_argument("--height", type=int, default=DEFAULT_HEIGHT)
    p_render.add_argument(
        "--strict",
        action="store_true",
        help="Reject captions with empty text or invalid time ranges.",
    )
    p_render.set_defaults(func=run_render)

    p_serve = sub.add_parser("serve", help="Run the HTTP API.")
    p_serve.add_argument("--host", default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.set_defaults(func=run_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for ``python -m autocaption`` and the console script."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
