import asyncio
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException

from chat_ledger.api.dependencies import get_profile_service
from chat_ledger.api.schemas import (
    AccountRequest,
    DefaultsUpdate,
    FundRequest,
    InstructionRequest,
    StatusResponse,
)
from chat_ledger.core.errors import ProfileStoreError
from chat_ledger.logger import get_logger
from chat_ledger.models import UserProfile
from chat_ledger.services.profiles import ProfileService

logger = get_logger(__name__)

router = APIRouter(prefix="/users")


def _store_failure(exc: ProfileStoreError) -> HTTPException:
    logger.error("[USERS] Profile store failure for user %s: %s", exc.user_id, exc)
    return HTTPException(status_code=500, detail="Profile store failure")


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> dict[str, Any]:
    try:
        profile = await asyncio.to_thread(profiles.get, user_id)
    except ProfileStoreError as exc:
        raise _store_failure(exc) from exc
    return profile.to_document()


@router.put("/{user_id}")
async def replace_user(
    user_id: str,
    document: Annotated[dict[str, Any], Body()],
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> dict[str, Any]:
    document = {**document, "userId": user_id}
    try:
        profile = UserProfile.from_document(document)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    try:
        saved = await asyncio.to_thread(profiles.replace, user_id, profile)
    except ProfileStoreError as exc:
        raise _store_failure(exc) from exc
    return saved.to_document()


@router.patch("/{user_id}/defaults")
async def update_defaults(
    user_id: str,
    req: DefaultsUpdate,
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> dict[str, Any]:
    try:
        profile = await asyncio.to_thread(
            profiles.update_defaults,
            user_id,
            req.default_currency,
            req.default_account,
            req.default_fund,
        )
    except ProfileStoreError as exc:
        raise _store_failure(exc) from exc
    return profile.to_document()


@router.post("/{user_id}/instructions", status_code=201)
async def add_instruction(
    user_id: str,
    req: InstructionRequest,
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> dict[str, Any]:
    try:
        profile = await asyncio.to_thread(profiles.add_instruction, user_id, req.instruction)
    except ProfileStoreError as exc:
        raise _store_failure(exc) from exc
    return profile.to_document()


@router.delete("/{user_id}/instructions/{index}", response_model=StatusResponse)
async def remove_instruction(
    user_id: str,
    index: int,
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> StatusResponse:
    try:
        removed = await asyncio.to_thread(profiles.remove_instruction, user_id, index)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ProfileStoreError as exc:
        raise _store_failure(exc) from exc
    return StatusResponse(status="removed", detail=removed)


@router.post("/{user_id}/accounts", status_code=201)
async def add_account(
    user_id: str,
    req: AccountRequest,
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> dict[str, Any]:
    try:
        profile = await asyncio.to_thread(profiles.add_account, user_id, req.name)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ProfileStoreError as exc:
        raise _store_failure(exc) from exc
    return profile.to_document()


@router.post("/{user_id}/funds", status_code=201)
async def add_fund(
    user_id: str,
    req: FundRequest,
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> dict[str, Any]:
    try:
        profile = await asyncio.to_thread(profiles.add_fund, user_id, req.name)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ProfileStoreError as exc:
        raise _store_failure(exc) from exc
    return profile.to_document()


@router.delete("/{user_id}", response_model=StatusResponse)
async def delete_user(
    user_id: str,
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> StatusResponse:
    try:
        await asyncio.to_thread(profiles.delete, user_id)
    except ProfileStoreError as exc:
        raise _store_failure(exc) from exc
    return StatusResponse(status="deleted")
