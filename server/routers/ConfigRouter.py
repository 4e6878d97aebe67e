from fastapi import APIRouter, Request

from server.models.requests import ValidateApiKeyRequest
from server.models.responses import ConfigResponse, ValidateApiKeyResponse
from shared.models.app_config import AVAILABLE_MODELS, AppConfig, AppConfigUpdate

router = APIRouter(prefix="/api/config", tags=["config"])


@router.get("")
async def get_config(request: Request) -> ConfigResponse:
    """Current configuration (env defaults until one is saved) and the selectable models."""
    config = await request.app.state.config_store.do_get()
    return ConfigResponse(config=config, available_models=AVAILABLE_MODELS)


@router.post("")
async def save_config(request: Request, body: AppConfigUpdate) -> AppConfig:
    """Replace the whole configuration record."""
    return await request.app.state.config_store.do_upsert(body)


@router.post("/validate-api-key")
async def validate_api_key(request: Request, body: ValidateApiKeyRequest) -> ValidateApiKeyResponse:
    details = await request.app.state.llm_client.do_validate_api_key(body.api_key)
    return ValidateApiKeyResponse(valid=details is not None, data=details)
