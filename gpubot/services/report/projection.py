from gpubot.schemas.smi import Gpu, NvidiaSmiLog
from gpubot.schemas.summary import GpuSummary, ReportHeader, ReportSummary


def _power(gpu: Gpu) -> tuple[str, str]:
    """Return (draw, current limit), preferring the R535+ power group."""
    readings = gpu.gpu_power_readings
    if "gpu_power_readings" in gpu.model_fields_set:
        return readings.power_draw, readings.current_power_limit
    legacy = gpu.power_readings
    return legacy.power_draw, legacy.power_limit


def summarize_gpu(gpu: Gpu) -> GpuSummary:
    power_draw, power_limit = _power(gpu)
    return GpuSummary(
        id=gpu.id,
        product_name=gpu.product_name,
        product_architecture=gpu.product_architecture,
        fan_speed=gpu.fan_speed,
        memory_total=gpu.fb_memory_usage.total,
        memory_reserved=gpu.fb_memory_usage.reserved,
        memory_used=gpu.fb_memory_usage.used,
        memory_free=gpu.fb_memory_usage.free,
        gpu_utilization=gpu.utilization.gpu_util,
        memory_utilization=gpu.utilization.memory_util,
        gpu_temperature=gpu.temperature.gpu_temp,
        power_draw=power_draw,
        power_limit=power_limit,
    )


def summarize(report: NvidiaSmiLog) -> ReportSummary:
    """Project the full decoded report onto the fields shown to users."""
    return ReportSummary(
        header=ReportHeader(
            timestamp=report.timestamp,
            driver_version=report.driver_version,
            cuda_version=report.cuda_version,
            attached_gpus=report.attached_gpus,
        ),
        gpus=[summarize_gpu(gpu) for gpu in report.gpu],
    )
