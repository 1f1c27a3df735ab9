"""Decoding schema for the ``nvidia-smi -q -x`` report.

Mirrors the ``nvidia_smi_log`` document one-to-one. Every leaf keeps the
literal text nvidia-smi printed ("24576 MiB", "45 C", "N/A"); nothing is
converted to numbers because units differ between fields and driver
generations. Absent nodes fall back to "", a default group or an empty list,
and unknown nodes are ignored so output from newer drivers still decodes.
"""

from typing import Any, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Key under which the decoder stores the direct text of an element that also
# has attributes or children.
TEXT_KEY = "#text"


def _coerce(annotation: Any, value: Any) -> Any:
    """Fit a value produced from the XML tree to the shape a field expects."""
    if get_origin(annotation) is list:
        (item_type,) = get_args(annotation)
        items = value if isinstance(value, list) else [value]
        return [_coerce(item_type, item) for item in items]
    if isinstance(value, list):
        # A scalar node repeated in the document: the last occurrence wins.
        return _coerce(annotation, value[-1] if value else "")
    if annotation is str and isinstance(value, dict):
        return value.get(TEXT_KEY, "")
    return value


class SmiNode(BaseModel):
    """Base for every element of the report."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _fit_xml_shape(cls, data: Any) -> Any:
        if isinstance(data, BaseModel):
            return data
        if not isinstance(data, dict):
            # Groups printed as plain text ("N/A", "None") carry no readings.
            return {}
        fitted = dict(data)
        for name, field in cls.model_fields.items():
            key = field.alias or name
            if key in fitted:
                fitted[key] = _coerce(field.annotation, fitted[key])
        return fitted


# ── Modes and identification ─────────────────────────────────────────────────


class MigMode(SmiNode):
    current_mig: str = ""
    pending_mig: str = ""


class DriverModel(SmiNode):
    current_dm: str = ""
    pending_dm: str = ""


class GpuOperationMode(SmiNode):
    current_gom: str = ""
    pending_gom: str = ""


class GpuVirtualizationMode(SmiNode):
    virtualization_mode: str = ""
    host_vgpu_mode: str = ""
    vgpu_heterogeneous_mode: str = ""


class GpuResetStatus(SmiNode):
    reset_required: str = ""
    drain_and_reset_recommended: str = ""


class InforomVersion(SmiNode):
    img_version: str = ""
    oem_object: str = ""
    ecc_object: str = ""
    pwr_object: str = ""


class InforomBbxFlush(SmiNode):
    latest_timestamp: str = ""
    latest_duration: str = ""


class Ibmnpu(SmiNode):
    relaxed_ordering_mode: str = ""


class Capabilities(SmiNode):
    egm: str = ""


# ── PCI ──────────────────────────────────────────────────────────────────────


class PcieGen(SmiNode):
    max_link_gen: str = ""
    current_link_gen: str = ""
    device_current_link_gen: str = ""
    max_device_link_gen: str = ""
    max_host_link_gen: str = ""


class LinkWidths(SmiNode):
    max_link_width: str = ""
    current_link_width: str = ""


class PciGpuLinkInfo(SmiNode):
    pcie_gen: PcieGen = Field(default_factory=PcieGen)
    link_widths: LinkWidths = Field(default_factory=LinkWidths)


class PciBridgeChip(SmiNode):
    bridge_chip_type: str = ""
    bridge_chip_fw: str = ""


class Pci(SmiNode):
    pci_bus: str = ""
    pci_device: str = ""
    pci_domain: str = ""
    pci_base_class: str = ""
    pci_sub_class: str = ""
    pci_device_id: str = ""
    pci_bus_id: str = ""
    pci_sub_system_id: str = ""
    pci_gpu_link_info: PciGpuLinkInfo = Field(default_factory=PciGpuLinkInfo)
    pci_bridge_chip: PciBridgeChip = Field(default_factory=PciBridgeChip)
    replay_counter: str = ""
    replay_rollover_counter: str = ""
    tx_util: str = ""
    rx_util: str = ""
    atomic_caps_inbound: str = ""
    atomic_caps_outbound: str = ""


# ── Memory and utilization ───────────────────────────────────────────────────


class MemoryUsage(SmiNode):
    """fb, BAR1 and CC-protected memory usage. Only fb reports ``reserved``."""

    total: str = ""
    reserved: str = ""
    used: str = ""
    free: str = ""


class Utilization(SmiNode):
    gpu_util: str = ""
    memory_util: str = ""
    encoder_util: str = ""
    decoder_util: str = ""
    jpeg_util: str = ""
    ofa_util: str = ""


class EncoderStats(SmiNode):
    """Shared by ``encoder_stats`` and ``fbc_stats``."""

    session_count: str = ""
    average_fps: str = ""
    average_latency: str = ""


class ClocksEventReasons(SmiNode):
    clocks_event_reason_gpu_idle: str = ""
    clocks_event_reason_applications_clocks_setting: str = ""
    clocks_event_reason_sw_power_cap: str = ""
    clocks_event_reason_hw_slowdown: str = ""
    clocks_event_reason_hw_thermal_slowdown: str = ""
    clocks_event_reason_hw_power_brake_slowdown: str = ""
    clocks_event_reason_sync_boost: str = ""
    clocks_event_reason_sw_thermal_slowdown: str = ""
    clocks_event_reason_display_clocks_setting: str = ""


# ── ECC and page retirement ──────────────────────────────────────────────────


class EccMode(SmiNode):
    current_ecc: str = ""
    pending_ecc: str = ""


class EccCounts(SmiNode):
    sram_correctable: str = ""
    sram_uncorrectable_parity: str = ""
    sram_uncorrectable_secded: str = ""
    dram_correctable: str = ""
    dram_uncorrectable: str = ""
    sram_threshold_exceeded: str = ""  # aggregate only


class SramSources(SmiNode):
    sram_l2: str = ""
    sram_sm: str = ""
    sram_microcontroller: str = ""
    sram_pcie: str = ""
    sram_other: str = ""


class EccErrors(SmiNode):
    volatile: EccCounts = Field(default_factory=EccCounts)
    aggregate: EccCounts = Field(default_factory=EccCounts)
    aggregate_uncorrectable_sram_sources: SramSources = Field(default_factory=SramSources)


class PageRetirement(SmiNode):
    retired_count: str = ""
    retired_pagelist: str = ""


class RetiredPages(SmiNode):
    multiple_single_bit_retirement: PageRetirement = Field(default_factory=PageRetirement)
    double_bit_retirement: PageRetirement = Field(default_factory=PageRetirement)
    pending_blacklist: str = ""
    pending_retirement: str = ""


class RowRemapperHistogram(SmiNode):
    row_remapper_histogram_max: str = ""
    row_remapper_histogram_high: str = ""
    row_remapper_histogram_partial: str = ""
    row_remapper_histogram_low: str = ""
    row_remapper_histogram_none: str = ""


class RemappedRows(SmiNode):
    remapped_row_corr: str = ""
    remapped_row_unc: str = ""
    remapped_row_pending: str = ""
    remapped_row_failure: str = ""
    row_remapper_histogram: RowRemapperHistogram = Field(default_factory=RowRemapperHistogram)


# ── Thermals and power ───────────────────────────────────────────────────────


class Temperature(SmiNode):
    gpu_temp: str = ""
    gpu_temp_tlimit: str = ""
    gpu_temp_max_threshold: str = ""
    gpu_temp_slow_threshold: str = ""
    gpu_temp_max_gpu_threshold: str = ""
    gpu_target_temperature: str = ""
    memory_temp: str = ""
    gpu_temp_max_mem_threshold: str = ""


class SupportedGpuTargetTemp(SmiNode):
    gpu_target_temp_min: str = ""
    gpu_target_temp_max: str = ""


class PowerReadings(SmiNode):
    """``gpu_power_readings`` and ``module_power_readings`` (R535+ schema)."""

    power_state: str = ""
    power_draw: str = ""
    current_power_limit: str = ""
    requested_power_limit: str = ""
    default_power_limit: str = ""
    min_power_limit: str = ""
    max_power_limit: str = ""


class MemoryPowerReadings(SmiNode):
    power_draw: str = ""


class LegacyPowerReadings(SmiNode):
    """``power_readings`` as printed by drivers before the R535 schema."""

    power_state: str = ""
    power_management: str = ""
    power_draw: str = ""
    power_limit: str = ""
    default_power_limit: str = ""
    enforced_power_limit: str = ""
    min_power_limit: str = ""
    max_power_limit: str = ""


# ── Clocks ───────────────────────────────────────────────────────────────────


class Clocks(SmiNode):
    """Shared by every clock group; each group reports a subset."""

    graphics_clock: str = ""
    sm_clock: str = ""
    mem_clock: str = ""
    video_clock: str = ""


class ClockPolicy(SmiNode):
    auto_boost: str = ""
    auto_boost_default: str = ""


class Voltage(SmiNode):
    graphics_volt: str = ""


class SupportedMemClock(SmiNode):
    value: str = ""
    supported_graphics_clock: list[str] = []


class SupportedClocks(SmiNode):
    supported_mem_clock: list[SupportedMemClock] = []


# ── Fabric and processes ─────────────────────────────────────────────────────


class FabricHealth(SmiNode):
    bandwidth: str = ""


class Fabric(SmiNode):
    state: str = ""
    status: str = ""
    clique_id: str = Field("", alias="cliqueId")
    cluster_uuid: str = Field("", alias="clusterUuid")
    health: FabricHealth = Field(default_factory=FabricHealth)


class ProcessInfo(SmiNode):
    gpu_instance_id: str = ""
    compute_instance_id: str = ""
    pid: str = ""
    type: str = ""
    process_name: str = ""
    used_memory: str = ""


class Processes(SmiNode):
    process_info: list[ProcessInfo] = []


# ── Device and root ──────────────────────────────────────────────────────────


class Gpu(SmiNode):
    """One ``<gpu id="...">`` section."""

    id: str = Field("", alias="@id")
    product_name: str = ""
    product_brand: str = ""
    product_architecture: str = ""
    display_mode: str = ""
    display_active: str = ""
    persistence_mode: str = ""
    addressing_mode: str = ""
    mig_mode: MigMode = Field(default_factory=MigMode)
    mig_devices: str = ""
    accounting_mode: str = ""
    accounting_mode_buffer_size: str = ""
    driver_model: DriverModel = Field(default_factory=DriverModel)
    serial: str = ""
    uuid: str = ""
    minor_number: str = ""
    vbios_version: str = ""
    multigpu_board: str = ""
    board_id: str = ""
    board_part_number: str = ""
    gpu_part_number: str = ""
    gpu_fru_part_number: str = ""
    gpu_module_id: str = ""
    inforom_version: InforomVersion = Field(default_factory=InforomVersion)
    inforom_bbx_flush: InforomBbxFlush = Field(default_factory=InforomBbxFlush)
    gpu_operation_mode: GpuOperationMode = Field(default_factory=GpuOperationMode)
    c2c_mode: str = ""
    gpu_virtualization_mode: GpuVirtualizationMode = Field(default_factory=GpuVirtualizationMode)
    gpu_reset_status: GpuResetStatus = Field(default_factory=GpuResetStatus)
    gsp_firmware_version: str = ""
    ibmnpu: Ibmnpu = Field(default_factory=Ibmnpu)
    pci: Pci = Field(default_factory=Pci)
    fan_speed: str = ""
    performance_state: str = ""
    clocks_event_reasons: ClocksEventReasons = Field(default_factory=ClocksEventReasons)
    sparse_operation_mode: str = ""
    fb_memory_usage: MemoryUsage = Field(default_factory=MemoryUsage)
    bar1_memory_usage: MemoryUsage = Field(default_factory=MemoryUsage)
    cc_protected_memory_usage: MemoryUsage = Field(default_factory=MemoryUsage)
    compute_mode: str = ""
    utilization: Utilization = Field(default_factory=Utilization)
    encoder_stats: EncoderStats = Field(default_factory=EncoderStats)
    fbc_stats: EncoderStats = Field(default_factory=EncoderStats)
    ecc_mode: EccMode = Field(default_factory=EccMode)
    ecc_errors: EccErrors = Field(default_factory=EccErrors)
    retired_pages: RetiredPages = Field(default_factory=RetiredPages)
    remapped_rows: RemappedRows = Field(default_factory=RemappedRows)
    temperature: Temperature = Field(default_factory=Temperature)
    supported_gpu_target_temp: SupportedGpuTargetTemp = Field(default_factory=SupportedGpuTargetTemp)
    gpu_power_readings: PowerReadings = Field(default_factory=PowerReadings)
    gpu_memory_power_readings: MemoryPowerReadings = Field(default_factory=MemoryPowerReadings)
    module_power_readings: PowerReadings = Field(default_factory=PowerReadings)
    power_readings: LegacyPowerReadings = Field(default_factory=LegacyPowerReadings)
    clocks: Clocks = Field(default_factory=Clocks)
    applications_clocks: Clocks = Field(default_factory=Clocks)
    default_applications_clocks: Clocks = Field(default_factory=Clocks)
    deferred_clocks: Clocks = Field(default_factory=Clocks)
    max_clocks: Clocks = Field(default_factory=Clocks)
    max_customer_boost_clocks: Clocks = Field(default_factory=Clocks)
    clock_policy: ClockPolicy = Field(default_factory=ClockPolicy)
    voltage: Voltage = Field(default_factory=Voltage)
    fabric: Fabric = Field(default_factory=Fabric)
    supported_clocks: SupportedClocks = Field(default_factory=SupportedClocks)
    processes: Processes = Field(default_factory=Processes)
    accounted_processes: str = ""
    capabilities: Capabilities = Field(default_factory=Capabilities)


class NvidiaSmiLog(SmiNode):
    """Root ``<nvidia_smi_log>`` element."""

    timestamp: str = ""
    driver_version: str = ""
    cuda_version: str = ""
    attached_gpus: str = ""
    gpu: list[Gpu] = []
