from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile

from app.fine_tune.api.dto import CreateFineTuneDTO, UploadResponse
from app.fine_tune.service.fine_tune_service import FineTuneService

fine_tune_router = APIRouter(prefix="/api/fine-tune", tags=["Fine-tuning"])


def get_fine_tune_service(request: Request) -> FineTuneService:
    """Dependency to get the fine-tune service from app.state."""
    service = getattr(request.app.state, "fine_tune_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Fine-tune service not initialized")
    return service


@fine_tune_router.post("/upload", response_model=UploadResponse)
async def upload_training_file(
    file: Optional[UploadFile] = File(default=None),
    service: FineTuneService = Depends(get_fine_tune_service),
):
    return await service.upload(file)


@fine_tune_router.post("/create")
async def create_fine_tune_job(
    body: CreateFineTuneDTO,
    service: FineTuneService = Depends(get_fine_tune_service),
) -> Dict[str, Any]:
    return await service.create_job(
        training_file=body.training_file,
        validation_file=body.validation_file,
        model=body.model,
        suffix=body.suffix,
    )


@fine_tune_router.get("/list")
async def list_fine_tune_jobs(service: FineTuneService = Depends(get_fine_tune_service)) -> List[Dict[str, Any]]:
    return await service.list_jobs()


@fine_tune_router.get("/{job_id}")
async def get_fine_tune_job(job_id: str, service: FineTuneService = Depends(get_fine_tune_service)) -> Dict[str, Any]:
    return await service.get_job(job_id)
