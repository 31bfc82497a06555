from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..dependencies import get_pipeline
from ..pipeline import Pipeline

router = APIRouter(
    prefix="/api",
    tags=["system"],
)


class HealthCheck(BaseModel):
    status: str


class DirectoryInfo(BaseModel):
    path: str
    active: bool


class TailerInfo(BaseModel):
    path: str
    state: str
    offset: int
    errorCount: int


class MonitorStatus(BaseModel):
    logsRoot: str
    logPattern: str
    directories: list[DirectoryInfo]
    tailers: list[TailerInfo]
    subscribers: int
    pendingLines: int


@router.get("/health", response_model=HealthCheck)
async def get_health():
    """Simple healthcheck endpoint"""
    return HealthCheck(status="healthy")


@router.get("/status", response_model=MonitorStatus)
async def get_status(pipeline: Pipeline = Depends(get_pipeline)):
    """Watched directories, tailed files and connected subscribers"""
    return MonitorStatus.model_validate(pipeline.status())
