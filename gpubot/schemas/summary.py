from pydantic import BaseModel, ConfigDict


class ReportHeader(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: str = ""
    driver_version: str = ""
    cuda_version: str = ""
    attached_gpus: str = ""


class GpuSummary(BaseModel):
    """The fields of one GPU shown in a /state reply."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    product_name: str = ""
    product_architecture: str = ""
    fan_speed: str = ""
    memory_total: str = ""
    memory_reserved: str = ""
    memory_used: str = ""
    memory_free: str = ""
    gpu_utilization: str = ""
    memory_utilization: str = ""
    gpu_temperature: str = ""
    power_draw: str = ""
    power_limit: str = ""


class ReportSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    header: ReportHeader = ReportHeader()
    gpus: list[GpuSummary] = []
