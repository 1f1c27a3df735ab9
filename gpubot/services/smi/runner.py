import asyncio
import shutil
from dataclasses import dataclass

import structlog

from gpubot.core.exceptions import ExternalToolFailureError, ExternalToolUnavailableError

logger = structlog.get_logger()

DEFAULT_BINARY = "nvidia-smi"
DEFAULT_ARGS = ("-q", "-x")  # Full query, XML output


@dataclass
class SmiResult:
    """Raw output of one nvidia-smi invocation."""

    stdout: bytes
    stderr: bytes
    returncode: int


class SmiRunner:
    """Locates and runs nvidia-smi. Decoding is left to the caller."""

    def __init__(
        self,
        binary: str = DEFAULT_BINARY,
        args: tuple[str, ...] = DEFAULT_ARGS,
        timeout: float = 30.0,
    ):
        self.binary = binary
        self.args = tuple(args)
        self.timeout = timeout

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    async def run(self) -> SmiResult:
        """Run the binary once and collect stdout, stderr and the exit code."""
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                *self.args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise ExternalToolUnavailableError(
                f"No {self.binary} binary", details={"reason": str(e)}
            )

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("smi_timeout", binary=self.binary, timeout=self.timeout)
            raise ExternalToolFailureError(
                f"{self.binary} timed out after {self.timeout:g}s", returncode=proc.returncode
            )

        logger.debug(
            "smi_finished",
            binary=self.binary,
            returncode=proc.returncode,
            stdout_bytes=len(stdout),
            stderr_bytes=len(stderr),
        )
        return SmiResult(stdout=stdout, stderr=stderr, returncode=proc.returncode)
