# app/llm/service/model_catalog.py
from typing import Dict, List, Optional

from pydantic import BaseModel

from app.core.config import Settings
from app.core.errors import ValidationError

PRIMARY = "openai"
SECONDARY = "deepseek"


class VirtualModel(BaseModel):
    """External model name; ``targets`` maps provider name -> real model id."""
    id: str
    name: str
    created: Optional[int] = None
    owned_by: Optional[str] = None
    provider: str = PRIMARY
    description: Optional[str] = None
    targets: Dict[str, str]

    def public(self) -> dict:
        return self.model_dump(exclude={"targets"})


class ModelCatalog:
    """Static table from virtual model ids to per-provider real model ids."""

    def __init__(self, models: List[VirtualModel], default_model: str):
        self._models = {m.id: m for m in models}
        self.default_model = default_model

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelCatalog":
        flagship = VirtualModel(
            id=settings.VIRTUAL_MODEL,
            name=settings.VIRTUAL_MODEL.upper(),
            created=1754524800,
            owned_by=PRIMARY,
            description="Flagship tunable assistant model",
            targets={
                PRIMARY: settings.PRIMARY_MODEL,
                SECONDARY: settings.SECONDARY_MODEL,
            },
        )
        return cls([flagship], default_model=flagship.id)

    def get(self, virtual_id: Optional[str]) -> VirtualModel:
        model = self._models.get(virtual_id or self.default_model)
        if model is None:
            supported = ", ".join(sorted(self._models))
            raise ValidationError(f"Unsupported model '{virtual_id}'", details=f"Supported models: {supported}")
        return model

    def resolve(self, virtual_id: Optional[str], provider_name: str) -> str:
        model = self.get(virtual_id)
        try:
            return model.targets[provider_name]
        except KeyError:
            raise ValidationError(f"Model '{model.id}' is not served by provider '{provider_name}'")

    def list_models(self) -> List[dict]:
        return [m.public() for m in self._models.values()]
