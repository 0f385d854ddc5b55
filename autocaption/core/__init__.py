"""Core caption data and segmentation.

WHY: The core package holds the pure heart of the pipeline: the Caption
record and the algorithms that produce it from provider transcripts.
Everything downstream (codec, renderers, API) consumes these types.

HOW: captions.py defines Caption plus validation and script detection,
segmenter.py turns a Transcript into captions.

RULES:
- No I/O in this package
- Functions degrade to empty output instead of raising
"""
