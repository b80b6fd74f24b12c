import logging
from datetime import datetime

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from jose import jwt as jose_jwt
from sqlalchemy.orm import Session

from .config import SUPABASE_JWT_AUDIENCE, SUPABASE_JWT_SECRET
from .database import get_db, set_rls_context
from .models import AgencyMember, Profile, SwitchRequest

logger = logging.getLogger(__name__)

security = HTTPBearer()

ALGORITHM = "HS256"
ADMIN_ROLE = "chautari_admin"
AGENCY_ADMIN_MEMBER_ROLES = ("owner", "admin")


def verify_access_token(token: str) -> dict:
    """
    Verify a hosted-auth access token (HS256 JWT signed with the project secret).
    Checks signature, expiry and audience.
    """
    token_parts = token.split(".")
    if len(token_parts) != 3:
        logger.warning(f"⚠️ Malformed token received: {len(token_parts)} parts")
        raise HTTPException(status_code=401, detail="Invalid token format. Expected a valid JWT token.")

    try:
        payload = jose_jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=SUPABASE_JWT_AUDIENCE,
        )
    except ExpiredSignatureError as e:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except JWTError as e:
        logger.warning(f"❌ Token verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid token") from e

    if not payload.get("sub"):
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    return payload


def get_or_create_profile(db: Session, claims: dict) -> Profile:
    """Find the profile for a verified token, creating a patient profile on first sight"""
    user_id = claims["sub"]
    email = claims.get("email")
    metadata = claims.get("user_metadata") or {}

    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if profile:
        if email and profile.email != email:
            profile.email = email
            db.commit()
        return profile

    logger.info(f"🆕 Creating profile for new user: {email}")
    profile = Profile(
        id=user_id,
        email=email,
        full_name=metadata.get("full_name"),
        role="patient",
        preferred_lang=metadata.get("preferred_lang") or "en",
    )
    db.add(profile)
    try:
        db.commit()
        db.refresh(profile)
    except Exception:
        db.rollback()
        # Another request created the row between the check and the insert
        profile = db.query(Profile).filter(Profile.id == user_id).first()
        if not profile:
            raise
    return profile


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Profile:
    """Get current user profile from the bearer token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    claims = verify_access_token(credentials.credentials)

    try:
        user = get_or_create_profile(db, claims)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Authentication failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Authentication failed") from e

    set_rls_context(db, user.id)
    logger.debug(f"✅ User authenticated: {user.email}")
    return user


async def require_patient(user: Profile = Depends(get_current_user)) -> Profile:
    if user.role != "patient":
        raise HTTPException(status_code=403, detail="This action is only available to patients")
    return user


async def require_admin(user: Profile = Depends(get_current_user)) -> Profile:
    """Platform admin guard"""
    if user.role != ADMIN_ROLE:
        logger.warning(f"⚠️ User {user.id} ({user.role}) attempted to access an admin route")
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def find_active_membership(db: Session, user_id: str, agency_id: str = None):
    query = db.query(AgencyMember).filter(
        AgencyMember.user_id == user_id, AgencyMember.is_active.is_(True)
    )
    if agency_id:
        query = query.filter(AgencyMember.agency_id == agency_id)
    return query.order_by(AgencyMember.created_at.asc()).first()


async def get_agency_membership(
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> AgencyMember:
    """Active agency membership of the current user"""
    membership = find_active_membership(db, user.id)
    if not membership:
        raise HTTPException(status_code=403, detail="No agency membership")
    return membership


async def require_agency_admin(
    membership: AgencyMember = Depends(get_agency_membership),
) -> AgencyMember:
    if membership.role not in AGENCY_ADMIN_MEMBER_ROLES:
        raise HTTPException(status_code=403, detail="Only agency admins can perform this action")
    return membership


def mark_member_joined(db: Session, membership: AgencyMember) -> None:
    """Stamp joined_at the first time a member authenticates into the portal"""
    if membership.joined_at is None:
        membership.joined_at = datetime.utcnow()
        db.commit()


def get_request_access(db: Session, user_id: str, request_id: str):
    """
    Resolve how a user participates in a switch request

    Returns:
        (switch_request, role) where role is "patient", "agency_staff" or None.
        switch_request is None when the request does not exist.
    """
    switch_request = db.query(SwitchRequest).filter(SwitchRequest.id == request_id).first()
    if not switch_request:
        return None, None
    if switch_request.patient_id == user_id:
        return switch_request, "patient"
    if find_active_membership(db, user_id, switch_request.new_agency_id):
        return switch_request, "agency_staff"
    return switch_request, None
