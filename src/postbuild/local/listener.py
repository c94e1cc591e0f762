# local/listener.py
from __future__ import annotations

import sys
from typing import TextIO


class StreamListener:
    """Build log sink writing to a text stream (stdout by default)."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream if stream is not None else sys.stdout

    def println(self, text: str) -> None:
        print(text, file=self.stream)

    def error(self, text: str) -> TextIO:
        print(f"ERROR: {text}", file=self.stream)
        return self.stream
