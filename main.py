from __future__ import annotations

import uvicorn

from helpdesk_copilot.api.app_factory import create_app
from helpdesk_copilot.core.settings import get_settings

settings = get_settings()
app = create_app(settings)

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
