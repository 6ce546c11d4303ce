from pydantic import BaseModel
from typing import Optional


class CreateFineTuneDTO(BaseModel):
    training_file: Optional[str] = None
    validation_file: Optional[str] = None
    model: Optional[str] = None
    suffix: Optional[str] = None


class UploadResponse(BaseModel):
    file_id: str
    filename: str
