# app/fine_tune/service/fine_tune_service.py
"""
Pass-through to the primary provider's file and fine-tuning job APIs.

Nothing here interprets job semantics; objects come back as the provider
returned them, converted to plain dicts.
"""

from typing import Any, List, Optional

from fastapi import UploadFile

from app.core.errors import UpstreamError, UploadTooLargeError, ValidationError
from app.core.logger import get_logger
from app.llm.service.provider.openai_provider import OpenAIProvider

logger = get_logger("FineTuneService")

READ_CHUNK_BYTES = 1024 * 1024


def _as_dict(obj: Any) -> Any:
    return obj.model_dump() if hasattr(obj, "model_dump") else obj


async def read_upload(upload: UploadFile, max_bytes: int) -> bytes:
    """Buffer an upload in memory, refusing it as soon as it passes ``max_bytes``."""
    limit_mb = max_bytes / (1024 * 1024)
    if upload.size is not None and upload.size > max_bytes:
        raise UploadTooLargeError("File too large", details=f"Maximum upload size is {limit_mb:g}MB")

    buffer = bytearray()
    while True:
        chunk = await upload.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        buffer.extend(chunk)
        if len(buffer) > max_bytes:
            raise UploadTooLargeError("File too large", details=f"Maximum upload size is {limit_mb:g}MB")
    return bytes(buffer)


class FineTuneService:
    def __init__(
        self,
        provider: OpenAIProvider,
        max_upload_bytes: int,
        default_model: str,
        default_suffix: str,
    ):
        self.provider = provider
        self.max_upload_bytes = max_upload_bytes
        self.default_model = default_model
        self.default_suffix = default_suffix

    async def upload(self, upload: Optional[UploadFile]) -> dict:
        if upload is None or not upload.filename:
            raise ValidationError("No file uploaded")
        content = await read_upload(upload, self.max_upload_bytes)
        try:
            uploaded = await self.provider.upload_file(upload.filename, content)
        except Exception as e:
            logger.error(f"File upload error: {e}")
            raise UpstreamError("Failed to upload file", details=str(e), provider=self.provider.name) from e
        logger.info(f"Uploaded training file {upload.filename} ({len(content)} bytes) as {uploaded.id}")
        return {"file_id": uploaded.id, "filename": upload.filename}

    async def create_job(
        self,
        training_file: Optional[str],
        validation_file: Optional[str] = None,
        model: Optional[str] = None,
        suffix: Optional[str] = None,
    ) -> dict:
        if not training_file:
            raise ValidationError("Training file is required")
        kwargs = {
            "training_file": training_file,
            "model": model or self.default_model,
            "suffix": suffix or self.default_suffix,
        }
        if validation_file:
            kwargs["validation_file"] = validation_file
        try:
            job = await self.provider.create_fine_tune_job(**kwargs)
        except Exception as e:
            logger.error(f"Fine-tune creation error: {e}")
            raise UpstreamError("Failed to create fine-tune job", details=str(e), provider=self.provider.name) from e
        return _as_dict(job)

    async def list_jobs(self) -> List[dict]:
        try:
            jobs = await self.provider.list_fine_tune_jobs()
        except Exception as e:
            logger.error(f"Fine-tune list error: {e}")
            raise UpstreamError("Failed to list fine-tune jobs", details=str(e), provider=self.provider.name) from e
        return [_as_dict(job) for job in jobs]

    async def get_job(self, job_id: str) -> dict:
        try:
            job = await self.provider.retrieve_fine_tune_job(job_id)
        except Exception as e:
            logger.error(f"Fine-tune retrieval error: {e}")
            raise UpstreamError("Failed to retrieve fine-tune job", details=str(e), provider=self.provider.name) from e
        return _as_dict(job)
