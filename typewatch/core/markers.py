"""Watch-mode pass boundary detection.

Checkers phrase their watch banners differently, so the markers that
delimit a pass are a small policy object matched against the accumulated
output buffer rather than literals baked into the session.
"""

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class WatchMarkers:
    """Patterns marking the start of a rerun and the end of a pass."""

    rerun: re.Pattern[str]
    pass_complete: re.Pattern[str]

    @classmethod
    def from_patterns(cls, rerun: str, pass_complete: str) -> "WatchMarkers":
        return cls(rerun=re.compile(rerun), pass_complete=re.compile(pass_complete))

    def find_rerun(self, output: str, pos: int = 0) -> re.Match[str] | None:
        return self.rerun.search(output, pos)

    def find_pass_complete(self, output: str, pos: int = 0) -> re.Match[str] | None:
        return self.pass_complete.search(output, pos)

    def is_rerun(self, output: str) -> bool:
        """True when the checker announced it is starting a new pass."""
        return self.find_rerun(output) is not None

    def is_pass_complete(self, output: str) -> bool:
        """True when the checker finished a pass and waits for changes."""
        return self.find_pass_complete(output) is not None


TSC_RERUN_PATTERN = r"File change detected"
TSC_PASS_COMPLETE_PATTERN = r"Found \w+ errors?\. Watching for"

TSC_WATCH_MARKERS = WatchMarkers.from_patterns(
    TSC_RERUN_PATTERN, TSC_PASS_COMPLETE_PATTERN
)
