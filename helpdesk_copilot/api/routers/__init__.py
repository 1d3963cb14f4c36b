from helpdesk_copilot.api.routers.drafts import router as drafts_router
from helpdesk_copilot.api.routers.exemplars import router as exemplars_router
from helpdesk_copilot.api.routers.guardrails import router as guardrails_router
from helpdesk_copilot.api.routers.health import router as health_router
from helpdesk_copilot.api.routers.knowledge import router as knowledge_router
from helpdesk_copilot.api.routers.tickets import router as tickets_router

__all__ = [
    "health_router",
    "tickets_router",
    "drafts_router",
    "knowledge_router",
    "guardrails_router",
    "exemplars_router",
]
