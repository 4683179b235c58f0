"""Fake implementations of core ports for testing.

These in-memory implementations allow the session controller to be
tested without a real checker, tsconfig or syntax analysis:

- FakeCheckerProcessPort: Scripted output chunks and exit status
- FakeCheckerConfigPort: Records created and removed configurations
- FakeDefinitionCollector: Pre-registered definitions per file
"""

from .collector import SAMPLE_SOURCE, FakeDefinitionCollector, build_sample_file
from .config import FakeCheckerConfigPort
from .process import FakeCheckerProcess, FakeCheckerProcessPort

__all__ = [
    "SAMPLE_SOURCE",
    "FakeCheckerConfigPort",
    "FakeCheckerProcess",
    "FakeCheckerProcessPort",
    "FakeDefinitionCollector",
    "build_sample_file",
]
