"""
Sahayak — Profiles API Router
Citizen profile onboarding, single-field updates and interaction history.
All validation happens in the profile store.
"""

from fastapi import APIRouter, Depends

from sahayak.api.dependencies import get_profile_store
from sahayak.models.api import CreateProfileRequest, HistoryRequest, UpdateProfileRequest
from sahayak.models.profile import CitizenProfile
from sahayak.services.profile_store import ProfileStore
from sahayak.utils.logger import logger

router = APIRouter()


@router.post("", response_model=CitizenProfile, status_code=201)
async def create_profile(body: CreateProfileRequest, profiles: ProfileStore = Depends(get_profile_store)):
    """Create a citizen profile from onboarding answers."""
    profile = await profiles.create(body.citizen_id, body.profile_fields())
    logger.info(f"👤 Profile registered: {body.citizen_id}")
    return profile


@router.get("/{citizen_id}", response_model=CitizenProfile)
async def get_profile(citizen_id: str, profiles: ProfileStore = Depends(get_profile_store)):
    return await profiles.get(citizen_id)


@router.patch("/{citizen_id}")
async def update_profile(
    citizen_id: str,
    body: UpdateProfileRequest,
    profiles: ProfileStore = Depends(get_profile_store),
):
    """Replace exactly one field. Older writes come back superseded."""
    outcome = await profiles.update(citizen_id, body.field, body.value, body.updated_at)
    return {
        "field": outcome.field,
        "applied": outcome.applied,
        "superseded": outcome.superseded,
        "profile": outcome.profile.model_dump(mode="json"),
    }


@router.post("/{citizen_id}/history")
async def append_history(
    citizen_id: str,
    body: HistoryRequest,
    profiles: ProfileStore = Depends(get_profile_store),
):
    """Record a viewed / saved / applied interaction (idempotent)."""
    profile, appended = await profiles.append_history(citizen_id, body.opportunity_id, body.action)
    return {
        "opportunity_id": body.opportunity_id,
        "action": body.action.value,
        "appended": appended,
        body.action.value: profile.history(body.action),
    }
