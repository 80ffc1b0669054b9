from __future__ import annotations

import sys
from typing import List, Optional, TextIO, Tuple


INFO = "info"
WARNING = "warning"
RESULT = "result"


class Diagnostics:
    """Sink for everything the engine reports to the user.

    ``info`` goes to stdout unless ``quiet``; ``warning`` goes to stderr and
    ``result`` to stdout regardless of ``quiet``. Every message is also kept
    in ``messages`` as ``(level, text)``.
    """

    def __init__(self, *, quiet: bool = False, out: Optional[TextIO] = None, err: Optional[TextIO] = None) -> None:
        self.quiet = quiet
        self._out = out
        self._err = err
        self.messages: List[Tuple[str, str]] = []

    def _emit(self, level: str, text: str, stream: TextIO) -> None:
        self.messages.append((level, text))
        print(text, file=stream)

    def info(self, text: str) -> None:
        if self.quiet:
            self.messages.append((INFO, text))
            return
        self._emit(INFO, text, self._out or sys.stdout)

    def warning(self, text: str) -> None:
        self._emit(WARNING, f"Warning: {text}", self._err or sys.stderr)

    def result(self, text: str) -> None:
        self._emit(RESULT, text, self._out or sys.stdout)

    def warnings(self) -> List[str]:
        return [text for level, text in self.messages if level == WARNING]


def quiet_sink() -> Diagnostics:
    return Diagnostics(quiet=True)
