"""Abstract base formatter and output container.

WHY: The export endpoint, the CLI and the subtitle-burn backend all turn
a caption list into a text file. A shared interface lets them pick a
format by key without caring which one it is.

HOW: BaseFormatter is an ABC with a ``name`` property and a ``format()``
method. FormatterOutput bundles the suggested filename with the content
and its MIME type.

RULES:
- Subclasses MUST implement ``name`` and ``format()``
- ``format()`` never raises on a well-typed caption list
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from autocaption.core.captions import Caption


@dataclass
class FormatterOutput:
    """One subtitle file produced by a formatter.

    Attributes:
        filename: Suggested download name, e.g. ``"captions.srt"``.
        content: The file content (UTF-8 text).
        media_type: MIME type for the content, e.g. ``"text/vtt"``.
    """

    filename: str
    content: str
    media_type: str


class BaseFormatter(ABC):
    """Abstract base for caption file formatters.

    To add a new format:
    1. Subclass BaseFormatter in formatters/
    2. Implement format() and name
    3. Register in FORMATTERS in formatters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'WebVTT'."""

    @abstractmethod
    def format(self, captions: Sequence[Caption]) -> FormatterOutput:
        """Serialize captions into a single subtitle file."""
