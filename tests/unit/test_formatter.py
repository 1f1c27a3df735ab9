"""Unit tests for report projection and the /state message formatter."""

import pytest

from gpubot.schemas.summary import GpuSummary, ReportHeader, ReportSummary
from gpubot.services.report.decoder import decode
from gpubot.services.report.formatter import (
    HTML_MARKUP,
    RICH_MARKUP,
    format_blocks,
    format_gpu,
    format_header,
    render,
)
from gpubot.services.report.projection import summarize
from tests.fixtures.smi import load_xml

EXAMPLE_XML = b"""<?xml version="1.0" ?>
<nvidia_smi_log>
    <timestamp>2024-01-01</timestamp>
    <driver_version>550.1</driver_version>
    <cuda_version>12.4</cuda_version>
    <attached_gpus>1</attached_gpus>
    <gpu id="0">
        <product_name>TestGPU</product_name>
        <fb_memory_usage>
            <total>100 MiB</total>
            <used>10 MiB</used>
        </fb_memory_usage>
        <utilization>
            <gpu_util>5</gpu_util>
            <memory_util>2</memory_util>
        </utilization>
        <temperature>
            <gpu_temp>40</gpu_temp>
        </temperature>
        <gpu_power_readings>
            <power_draw>20 W</power_draw>
            <current_power_limit>250 W</current_power_limit>
        </gpu_power_readings>
    </gpu>
</nvidia_smi_log>
"""

GPU_LABELS = [
    "GPU ID:",
    "Product Name:",
    "Fan speed:",
    "",
    "Memory total:",
    "Memory reserved:",
    "Memory used:",
    "Memory free:",
    "",
    "GPU utilization:",
    "Memory utilization:",
    "",
    "GPU temperature:",
    "GPU power draw:",
]


class TestWorkedExample:
    def test_header_block(self):
        blocks = render(decode(EXAMPLE_XML))
        assert blocks[0] == (
            "Timestamp: <b>2024-01-01</b>\n"
            "Driver Version: <b>550.1</b>\n"
            "CUDA Version: <b>12.4</b>\n"
            "Attached GPUs: <b>1</b>"
        )

    def test_device_block(self):
        blocks = render(decode(EXAMPLE_XML))
        assert len(blocks) == 2
        lines = blocks[1].split("\n")
        assert lines[0] == "GPU ID: <b>0</b>"
        assert lines[1] == "Product Name: <b>TestGPU</b> ()"
        assert "Memory total: <b>100 MiB</b>" in lines
        assert "Memory used: <b>10 MiB</b>" in lines
        assert "GPU utilization: <b>5</b>" in lines
        assert "Memory utilization: <b>2</b>" in lines
        assert "GPU temperature: <b>40</b>" in lines
        assert lines[-1] == "GPU power draw: <b>20 W</b> / <b>250 W</b>"

    def test_absent_fields_render_as_empty_spans(self):
        lines = render(decode(EXAMPLE_XML))[1].split("\n")
        assert lines[2] == "Fan speed: <b></b>"
        assert lines[5] == "Memory reserved: <b></b>"
        assert lines[7] == "Memory free: <b></b>"


class TestBlockStructure:
    def test_zero_devices_yields_header_only(self, no_gpus_xml):
        blocks = render(decode(no_gpus_xml))
        assert len(blocks) == 1
        lines = blocks[0].split("\n")
        assert len(lines) == 4
        assert [line.split(":")[0] for line in lines] == [
            "Timestamp",
            "Driver Version",
            "CUDA Version",
            "Attached GPUs",
        ]

    def test_one_block_per_device_in_document_order(self, two_gpus_xml):
        blocks = render(decode(two_gpus_xml))
        assert len(blocks) == 3
        assert blocks[1].startswith("GPU ID: <b>00000000:01:00.0</b>\n")
        assert blocks[2].startswith("GPU ID: <b>00000000:02:00.0</b>\n")

    def test_full_device_block(self, two_gpus_xml):
        blocks = render(decode(two_gpus_xml))
        assert blocks[1] == "\n".join(
            [
                "GPU ID: <b>00000000:01:00.0</b>",
                "Product Name: <b>NVIDIA GeForce RTX 4090</b> (Ada Lovelace)",
                "Fan speed: <b>30 %</b>",
                "",
                "Memory total: <b>24564 MiB</b>",
                "Memory reserved: <b>346 MiB</b>",
                "Memory used: <b>18000 MiB</b>",
                "Memory free: <b>6218 MiB</b>",
                "",
                "GPU utilization: <b>87 %</b>",
                "Memory utilization: <b>41 %</b>",
                "",
                "GPU temperature: <b>66 C</b>",
                "GPU power draw: <b>312.45 W</b> / <b>450.00 W</b>",
            ]
        )

    def test_max_threshold_is_not_shown(self, two_gpus_xml):
        blocks = render(decode(two_gpus_xml))
        assert "90 C" not in blocks[1]
        assert "98 C" not in blocks[2]

    @pytest.mark.parametrize("gpu", [GpuSummary(), GpuSummary(id="3", fan_speed="40 %", power_draw="1 W")])
    def test_line_count_is_invariant_to_field_presence(self, gpu):
        lines = format_gpu(gpu).split("\n")
        assert len(lines) == len(GPU_LABELS)
        for line, label in zip(lines, GPU_LABELS):
            assert line.startswith(label)

    def test_empty_summary_renders_every_line(self):
        blocks = format_blocks(ReportSummary(gpus=[GpuSummary()]))
        assert blocks[0] == (
            "Timestamp: <b></b>\nDriver Version: <b></b>\nCUDA Version: <b></b>\nAttached GPUs: <b></b>"
        )
        assert blocks[1].split("\n")[-1] == "GPU power draw: <b></b> / <b></b>"

    def test_formatting_is_deterministic(self, two_gpus_xml):
        report = decode(two_gpus_xml)
        assert render(report) == render(report)


class TestMarkup:
    def test_html_values_are_escaped(self):
        header = ReportHeader(timestamp="<now> & then", driver_version="550")
        assert format_header(header, HTML_MARKUP).split("\n")[0] == "Timestamp: <b>&lt;now&gt; &amp; then</b>"

    def test_architecture_is_escaped_but_not_emphasized(self):
        line = format_gpu(GpuSummary(product_name="A", product_architecture="<arch>")).split("\n")[1]
        assert line == "Product Name: <b>A</b> (&lt;arch&gt;)"

    def test_rich_markup(self):
        header = ReportHeader(timestamp="[now]", driver_version="550.1")
        lines = format_header(header, RICH_MARKUP).split("\n")
        assert lines[0] == "Timestamp: [bold]\\[now][/bold]"
        assert lines[1] == "Driver Version: [bold]550.1[/bold]"


class TestProjection:
    def test_summary_fields(self, two_gpus_xml):
        summary = summarize(decode(two_gpus_xml))
        assert summary.header.driver_version == "550.90.07"
        second = summary.gpus[1]
        assert second.id == "00000000:02:00.0"
        assert second.product_architecture == "Ampere"
        assert second.fan_speed == "N/A"
        assert second.memory_free == "48625 MiB"
        assert second.power_draw == "21.76 W"
        assert second.power_limit == "300.00 W"

    def test_legacy_power_readings_fallback(self):
        summary = summarize(decode(load_xml("legacy_power.xml")))
        gpu = summary.gpus[0]
        assert gpu.power_draw == "25.37 W"
        assert gpu.power_limit == "250.00 W"
        assert gpu.memory_reserved == ""

    def test_current_power_group_wins_over_legacy(self):
        raw = (
            b'<nvidia_smi_log><gpu id="0">'
            b"<gpu_power_readings><power_draw>5 W</power_draw></gpu_power_readings>"
            b"<power_readings><power_draw>9 W</power_draw><power_limit>99 W</power_limit></power_readings>"
            b"</gpu></nvidia_smi_log>"
        )
        gpu = summarize(decode(raw)).gpus[0]
        assert gpu.power_draw == "5 W"
        assert gpu.power_limit == ""

    def test_empty_report(self):
        summary = summarize(decode(b"<nvidia_smi_log/>"))
        assert summary == ReportSummary()
