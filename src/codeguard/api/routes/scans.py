from fastapi import APIRouter, Depends

from ...config import get_settings
from ...scan import ScanOrchestrator
from ...store import JobStore, ResultStore, get_sessionmaker
from ..schemas import ProcessNextResponse, ScanCreateRequest, ScanJobResponse, ScanStatusResponse

router = APIRouter()


async def get_job_store() -> JobStore:
    settings = get_settings()
    return JobStore(
        await get_sessionmaker(),
        stale_minutes=settings.stale_job_minutes,
        lease_seconds=settings.lease_seconds,
    )


async def get_orchestrator(jobs: JobStore = Depends(get_job_store)) -> ScanOrchestrator:
    settings = get_settings()
    results = ResultStore(await get_sessionmaker(), batch_size=settings.batch_size)
    return ScanOrchestrator(jobs, results, settings)


@router.post("/scans", response_model=ScanJobResponse, status_code=201)
async def create_scan(payload: ScanCreateRequest, jobs: JobStore = Depends(get_job_store)):
    """Queue a scan for a repository. Unknown or inactive repositories are a 404."""
    job = await jobs.enqueue(payload.repository_id, payload.scan_type, payload.upload_storage_key)
    return ScanJobResponse.model_validate(job)


@router.get("/scans/{job_id}", response_model=ScanStatusResponse)
async def get_scan_status(job_id: int, jobs: JobStore = Depends(get_job_store)):
    return ScanStatusResponse(**await jobs.get_status(job_id))


@router.post("/scans/process-next", response_model=ProcessNextResponse)
async def process_next(orchestrator: ScanOrchestrator = Depends(get_orchestrator)):
    """
    Claim and run the oldest pending scan inside this request.

    Returns ``processed: false`` when the queue is empty. A scan that fails
    still returns 200 with ``status: failed`` and its error message.
    """
    outcome = await orchestrator.process_next_job()
    if outcome is None:
        return ProcessNextResponse(processed=False)
    return ProcessNextResponse(
        processed=True,
        job_id=outcome.job_id,
        status=outcome.status,
        error_message=outcome.error_message,
        summary=outcome.summary or None,
    )
