"""Compositor worker: draws styled captions over a video with moviepy.

Run as ``python -m autocaption.render.compositor composition.json out.mp4``.
MoviePyCompositor launches it in a child process; the exit code is the
only signal it returns (0 on success, 1 on any failure).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from moviepy import ColorClip, CompositeVideoClip, TextClip, VideoFileClip, vfx

logger = logging.getLogger(__name__)

FADE_S = 0.3
BOX_PADDING = (24, 12)

RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class OverlayStyle:
    text_color: str
    box_color: RGB
    box_opacity: float
    anchor: str  # "top" or "bottom"
    offset_ratio: float


STYLES: Dict[str, OverlayStyle] = {
    "bottom": OverlayStyle("#ffffff", (0, 0, 0), 0.6, "bottom", 0.10),
    "top": OverlayStyle("#ffffff", (0, 128, 255), 0.9, "top", 0.08),
    "karaoke": OverlayStyle("#000000", (255, 200, 0), 0.95, "bottom", 0.18),
}


def font_size_for(width: int) -> int:
    return int(round(max(24, width / 22)))


def box_origin(style: OverlayStyle, width: int, height: int, box_height: int) -> Tuple[int, int]:
    """Top-left corner of a caption box 90% of the frame wide."""
    x = int(width * 0.05)
    offset = int(height * style.offset_ratio)
    if style.anchor == "top":
        y = offset
    else:
        y = height - offset - box_height
    return x, max(0, y)


def _caption_clips(
    caption: Dict[str, Any],
    style: OverlayStyle,
    width: int,
    height: int,
    font: Optional[str],
) -> List[Any]:
    start = float(caption["start"])
    duration = float(caption["end"]) - start
    text = str(caption.get("text", "")).strip()
    if duration <= 0 or not text:
        return []

    box_width = int(width * 0.9)
    text_clip = TextClip(
        font=font,
        text=text,
        font_size=font_size_for(width),
        color=style.text_color,
        method="caption",
        size=(box_width - 2 * BOX_PADDING[0], None),
        text_align="center",
    )
    box_height = text_clip.size[1] + 2 * BOX_PADDING[1]
    x, y = box_origin(style, width, height, box_height)

    box = (
        ColorClip(size=(box_width, box_height), color=style.box_color)
        .with_opacity(style.box_opacity)
        .with_position((x, y))
    )
    text_clip = text_clip.with_position((x + BOX_PADDING[0], y + BOX_PADDING[1]))

    fade = min(FADE_S, duration / 2)
    clips = []
    for clip in (box, text_clip):
        clip = clip.with_start(start).with_duration(duration)
        clips.append(clip.with_effects([vfx.CrossFadeIn(fade), vfx.CrossFadeOut(fade)]))
    return clips


def render_composition(composition: Dict[str, Any], output_path: Path) -> Path:
    width = int(composition["width"])
    height = int(composition["height"])
    fps = int(composition["fps"])
    style = STYLES.get(composition.get("style", "bottom"), STYLES["bottom"])
    font = composition.get("font")

    video = VideoFileClip(composition["video"]).resized(new_size=(width, height))
    final = None
    try:
        overlays: List[Any] = []
        for caption in composition.get("captions", []):
            if float(caption["start"]) >= video.duration:
                continue
            overlays.extend(_caption_clips(caption, style, width, height, font))

        final = CompositeVideoClip([video, *overlays], size=(width, height))
        final = final.with_duration(video.duration)
        final.write_videofile(
            str(output_path),
            fps=fps,
            codec="libx264",
            audio_codec="aac",
            logger=None,
        )
    finally:
        if final is not None:
            final.close()
        video.close()

    logger.info("Rendered %d caption overlays to %s", len(overlays) // 2, output_path)
    return output_path


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="autocaption.render.compositor",
        description="Composite captions from a composition bundle onto its video.",
    )
    parser.add_argument("bundle", type=Path, help="composition.json written by the orchestrator")
    parser.add_argument("output", type=Path, help="MP4 path to write (overwritten)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    try:
        composition = json.loads(args.bundle.read_text(encoding="utf-8"))
        render_composition(composition, args.output)
    except Exception:
        logger.exception("Frame composite failed for %s", args.bundle)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
