from datetime import datetime

from pydantic import BaseModel

from shared.models.app_config import AppConfig, ModelInfo
from shared.models.search import SourceReference


class ChatResponse(BaseModel):
    response: str
    conversation_id: str
    sources: list[SourceReference] = []
    warnings: list[str] = []


class ConfigResponse(BaseModel):
    config: AppConfig
    available_models: list[ModelInfo]


class ValidateApiKeyResponse(BaseModel):
    valid: bool
    data: dict | None = None


class DeleteResponse(BaseModel):
    id: str
    deleted: bool = True
    name: str | None = None


class WebhookAck(BaseModel):
    success: bool = True
    message: str
    conversation_id: str | None = None
    delivered: bool | None = None


class HealthResponse(BaseModel):
    status: str
    database: str
    timestamp: datetime
