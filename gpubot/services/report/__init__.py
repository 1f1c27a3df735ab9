"""nvidia-smi report pipeline: run the tool, decode its XML, format replies."""

import structlog

from gpubot.core.exceptions import ExternalToolFailureError, ExternalToolUnavailableError
from gpubot.schemas.smi import NvidiaSmiLog
from gpubot.services.report.decoder import decode
from gpubot.services.smi.runner import SmiRunner

logger = structlog.get_logger()


async def collect_report(runner: SmiRunner) -> NvidiaSmiLog:
    """Run nvidia-smi and decode its output.

    Stops before running anything when the binary is missing, and never
    decodes output that came with a non-empty stderr or a non-zero exit.
    """
    if not runner.is_available():
        raise ExternalToolUnavailableError(f"No {runner.binary} binary")

    result = await runner.run()
    if result.stderr or result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        logger.warning("smi_failed", returncode=result.returncode, stderr=stderr)
        raise ExternalToolFailureError(
            f"{runner.binary} error: {stderr}" if stderr else f"{runner.binary} exited with code {result.returncode}",
            stderr=stderr,
            returncode=result.returncode,
        )

    return decode(result.stdout)
