"""
Profile Router
===============
The single user profile. Its age and sex pre-fill new measurement workflows.

Endpoints:
  GET    /profile/  - Get the profile
  PUT    /profile/  - Create or replace the profile
  DELETE /profile/  - Remove the profile
"""

from fastapi import APIRouter, Depends, HTTPException

from bodyfat_tracker.routers.deps import get_store
from bodyfat_tracker.schemas import MessageResponse, Profile
from bodyfat_tracker.services.record_store import RecordStore

router = APIRouter(prefix="/profile", tags=["Profile"])


@router.get("/", response_model=Profile)
async def get_profile(store: RecordStore = Depends(get_store)):
    profile = await store.get_profile()
    if profile is None:
        raise HTTPException(status_code=404, detail="No profile has been saved.")
    return profile


@router.put("/", response_model=Profile)
async def save_profile(
    profile: Profile,
    store: RecordStore = Depends(get_store),
):
    return await store.save_profile(profile)


@router.delete("/", response_model=MessageResponse)
async def clear_profile(store: RecordStore = Depends(get_store)):
    await store.clear_profile()
    return MessageResponse(message="Profile cleared.")
