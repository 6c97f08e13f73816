from fastapi import HTTPException, Request

from chat_ledger.orchestrator import CommandOrchestrator
from chat_ledger.services.profiles import ProfileService


def get_orchestrator(request: Request) -> CommandOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if not orchestrator:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return orchestrator


def get_profile_service(request: Request) -> ProfileService:
    profiles = getattr(request.app.state, "profiles", None)
    if not profiles:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return profiles
