from __future__ import annotations

from fastapi import APIRouter, Depends

from helpdesk_copilot.api.dependencies import get_settings_dep
from helpdesk_copilot.core.settings import Settings

router = APIRouter()


@router.get("/health")
def health(settings: Settings = Depends(get_settings_dep)) -> dict[str, str]:
    return {"status": "ok", "completion": "configured" if settings.groq_api_key else "not_configured"}
