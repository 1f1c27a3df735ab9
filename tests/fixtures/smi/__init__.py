"""Saved ``nvidia-smi -q -x`` reports and a canned SmiRunner for tests."""

from pathlib import Path
from unittest.mock import AsyncMock

from gpubot.services.smi.runner import SmiResult, SmiRunner

FIXTURES_DIR = Path(__file__).parent


def load_xml(name: str) -> bytes:
    return (FIXTURES_DIR / name).read_bytes()


def make_runner(
    stdout: bytes = b"",
    stderr: bytes = b"",
    returncode: int = 0,
    available: bool = True,
) -> SmiRunner:
    """SmiRunner whose availability and output are canned."""
    runner = SmiRunner()
    runner.is_available = lambda: available
    runner.run = AsyncMock(return_value=SmiResult(stdout=stdout, stderr=stderr, returncode=returncode))
    return runner
