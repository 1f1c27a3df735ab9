"""Render a report summary as the messages sent for /state.

The first block is the report header, then one block per GPU in document
order. Line positions are fixed: an empty value still gets its line.
"""

import html
from collections.abc import Callable
from dataclasses import dataclass

from rich.markup import escape as rich_escape

from gpubot.schemas.smi import NvidiaSmiLog
from gpubot.schemas.summary import GpuSummary, ReportHeader, ReportSummary
from gpubot.services.report.projection import summarize


@dataclass(frozen=True)
class Markup:
    """How values are escaped and emphasized for one delivery channel."""

    name: str
    emphasize: Callable[[str], str]
    escape: Callable[[str], str]

    def value(self, raw: str) -> str:
        return self.emphasize(self.escape(raw))

    def plain(self, raw: str) -> str:
        return self.escape(raw)


# Telegram parse_mode=HTML
HTML_MARKUP = Markup(
    name="html",
    emphasize=lambda text: f"<b>{text}</b>",
    escape=lambda text: html.escape(text, quote=False),
)

# Terminal output through rich.console
RICH_MARKUP = Markup(
    name="rich",
    emphasize=lambda text: f"[bold]{text}[/bold]",
    escape=rich_escape,
)


def format_header(header: ReportHeader, markup: Markup = HTML_MARKUP) -> str:
    lines = [
        f"Timestamp: {markup.value(header.timestamp)}",
        f"Driver Version: {markup.value(header.driver_version)}",
        f"CUDA Version: {markup.value(header.cuda_version)}",
        f"Attached GPUs: {markup.value(header.attached_gpus)}",
    ]
    return "\n".join(lines)


def format_gpu(gpu: GpuSummary, markup: Markup = HTML_MARKUP) -> str:
    v = markup.value
    lines = [
        f"GPU ID: {v(gpu.id)}",
        f"Product Name: {v(gpu.product_name)} ({markup.plain(gpu.product_architecture)})",
        f"Fan speed: {v(gpu.fan_speed)}",
        "",
        f"Memory total: {v(gpu.memory_total)}",
        f"Memory reserved: {v(gpu.memory_reserved)}",
        f"Memory used: {v(gpu.memory_used)}",
        f"Memory free: {v(gpu.memory_free)}",
        "",
        f"GPU utilization: {v(gpu.gpu_utilization)}",
        f"Memory utilization: {v(gpu.memory_utilization)}",
        "",
        f"GPU temperature: {v(gpu.gpu_temperature)}",
        f"GPU power draw: {v(gpu.power_draw)} / {v(gpu.power_limit)}",
    ]
    return "\n".join(lines)


def format_blocks(summary: ReportSummary, markup: Markup = HTML_MARKUP) -> list[str]:
    """Return ``len(summary.gpus) + 1`` text blocks, header first."""
    blocks = [format_header(summary.header, markup)]
    blocks.extend(format_gpu(gpu, markup) for gpu in summary.gpus)
    return blocks


def render(report: NvidiaSmiLog, markup: Markup = HTML_MARKUP) -> list[str]:
    """Project a decoded report and format it in one step."""
    return format_blocks(summarize(report), markup)
