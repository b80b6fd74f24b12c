"""Profile router - FastAPI endpoints for profile, onboarding and patient dashboard"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_patient
from ...database import get_db
from ...models import Profile
from .schemas import (
    DashboardResponse,
    OnboardingRequest,
    OnboardingStatusResponse,
    ProfileResponse,
    ProfileUpdate,
)
from .service import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Profile"])


def get_profile_service(db: Session = Depends(get_db)) -> ProfileService:
    """Dependency injection for ProfileService"""
    return ProfileService(db)


# ============================================================================
# PROFILE
# ============================================================================


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(current_user: Profile = Depends(get_current_user)):
    """Get the signed-in user's profile"""
    return current_user


@router.patch("/profile", response_model=ProfileResponse)
async def update_profile(
    data: ProfileUpdate,
    current_user: Profile = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    """Update name, phone or preferred language"""
    return service.update_profile(data, current_user)


# ============================================================================
# ONBOARDING
# ============================================================================


@router.put("/profile/onboarding")
async def save_onboarding(
    data: OnboardingRequest,
    request: Request,
    current_user: Profile = Depends(require_patient),
    service: ProfileService = Depends(get_profile_service),
):
    """Save the patient onboarding wizard"""
    return service.save_onboarding(data, current_user, request)


@router.get("/profile/onboarding-status", response_model=OnboardingStatusResponse)
async def get_onboarding_status(
    current_user: Profile = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return service.get_onboarding_status(current_user)


# ============================================================================
# DASHBOARD
# ============================================================================


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    current_user: Profile = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    """Patient dashboard: profile, recent requests and notifications"""
    return service.get_dashboard(current_user)
