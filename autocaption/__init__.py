"""Autocaption: transcript-driven captioning for video.

WHY: Turning a spoken video into a captioned one takes four hops that
each fail in their own way: a remote speech-to-text job, segmentation of
the word-timed transcript into readable captions, a render backend that
burns or composites the captions into pixels, and delivery of the result.

HOW: Four layers, leaves first: core (captions + segmenter), formatters
(SRT/WebVTT codec), api (provider client), render (source resolution,
backends, orchestrator), plus a FastAPI server and an argparse CLI that
wire them together.

RULES:
- Core and formatters are pure; they never raise on well-typed input
- Each render attempt owns a private temp directory
- Frame-composite failures fall back to subtitle-burn at runtime
"""

__version__ = "0.1.0"
