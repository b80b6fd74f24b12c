"""Agency service - Directory search, matching and NPI registry lookup"""

import json
import logging
import os
from typing import Optional

import httpx
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import NPI_REGISTRY_URL
from ...models import Agency, Profile
from ...rate_limiter import get_redis_client
from ...shared.validators import validate_npi
from ..profiles.repository import ProfileRepository
from .repository import AgencyRepository
from .schemas import AgencyResponse, AgencySearchResponse, NPILookupResponse

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 50
NPI_CACHE_SECONDS = int(os.getenv("NPI_CACHE_SECONDS", "86400"))


def _is_set(value: Optional[str]) -> bool:
    """'all' (or empty) means no filter"""
    return bool(value) and value != "all"


def agency_matches(
    agency: Agency,
    county: Optional[str] = None,
    care_type: Optional[str] = None,
    payer_type: Optional[str] = None,
    services: Optional[list[str]] = None,
    language: Optional[str] = None,
) -> bool:
    """Apply the list-valued directory filters to one agency"""
    if _is_set(county) and county not in (agency.service_counties or []):
        return False
    if _is_set(care_type):
        offered = agency.care_types or []
        if care_type not in offered and "both" not in offered:
            return False
    if _is_set(payer_type) and payer_type not in (agency.payers_accepted or []):
        return False
    if services and not set(services) & set(agency.services_offered or []):
        return False
    if _is_set(language) and language not in (agency.languages_spoken or []):
        return False
    return True


def directory_sort_key(agency: Agency):
    """Verified partners first, then quality score descending (nulls last), then name"""
    score = agency.medicare_quality_score
    return (
        not agency.is_verified_partner,
        score is None,
        -(score or 0.0),
        (agency.name or "").lower(),
    )


async def fetch_npi_record(npi: str) -> Optional[dict]:
    """Query the CMS NPPES registry (API v2.1) for one NPI; returns the first result or None"""
    params = {"version": "2.1", "number": npi}
    async with httpx.AsyncClient() as client:
        resp = await client.get(NPI_REGISTRY_URL, params=params, timeout=10.0)

    if resp.status_code >= 400:
        logger.warning(f"NPI registry error {resp.status_code}: {resp.text[:200]}")
        raise HTTPException(status_code=502, detail="NPI registry temporarily unavailable")

    payload = resp.json()
    results = payload.get("results") or []
    return results[0] if results else None


def parse_npi_record(record: Optional[dict]) -> NPILookupResponse:
    """Flatten an NPPES result into name/address/phone/taxonomy"""
    if not record:
        return NPILookupResponse(found=False)

    basic = record.get("basic", {})
    name = basic.get("organization_name") or " ".join(
        part for part in (basic.get("first_name"), basic.get("last_name")) if part
    )

    addresses = record.get("addresses") or []
    location = next(
        (a for a in addresses if a.get("address_purpose") == "LOCATION"),
        addresses[0] if addresses else {},
    )
    address = None
    if location:
        postal = (location.get("postal_code") or "")[:5]
        address = ", ".join(
            part
            for part in (
                location.get("address_1"),
                location.get("city"),
                f"{location.get('state', '')} {postal}".strip(),
            )
            if part
        )

    taxonomies = record.get("taxonomies") or []
    primary = next((t for t in taxonomies if t.get("primary")), taxonomies[0] if taxonomies else {})

    return NPILookupResponse(
        found=True,
        name=name or None,
        address=address or None,
        phone=location.get("telephone_number") if location else None,
        taxonomy=primary.get("desc") if primary else None,
    )


class AgencyService:
    """Service layer for the agency directory"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AgencyRepository()

    def search_agencies(
        self,
        county: Optional[str] = None,
        care_type: Optional[str] = None,
        payer_type: Optional[str] = None,
        services: Optional[list[str]] = None,
        language: Optional[str] = None,
        verified_only: bool = False,
        query: Optional[str] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> AgencySearchResponse:
        """Search active agencies; list-valued filters are evaluated after the column filters"""
        page = max(1, page)
        page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        name_query = query.strip() if query and query.strip() else None

        candidates = self.repo.get_active_agencies(self.db, verified_only, name_query)
        matched = [
            a
            for a in candidates
            if agency_matches(a, county, care_type, payer_type, services, language)
        ]
        matched.sort(key=directory_sort_key)

        start = (page - 1) * page_size
        page_items = matched[start : start + page_size]
        logger.debug(f"🔎 Agency search matched {len(matched)} agencies (page {page})")

        return AgencySearchResponse(
            agencies=[AgencyResponse.model_validate(a) for a in page_items],
            total=len(matched),
        )

    def get_agency(self, agency_id: str) -> Agency:
        agency = self.repo.get_active_agency(self.db, agency_id)
        if not agency:
            raise HTTPException(status_code=404, detail="Agency not found")
        return agency

    def get_matched_agencies(self, user: Profile) -> AgencySearchResponse:
        """Agencies serving the patient's county that accept the patient's payer"""
        details = ProfileRepository.get_patient_details(self.db, user.id)
        if not details:
            return self.search_agencies()
        return self.search_agencies(county=details.address_county, payer_type=details.payer_type)

    async def lookup_npi(self, npi: str) -> NPILookupResponse:
        try:
            validate_npi(npi)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        cache_key = f"npi:lookup:{npi}"
        try:
            cached = get_redis_client().get(cache_key)
            if cached:
                return NPILookupResponse(**json.loads(cached))
        except Exception as e:
            logger.warning(f"Redis cache read error: {e}")

        try:
            record = await fetch_npi_record(npi)
        except HTTPException:
            raise
        except httpx.HTTPError as e:
            logger.error(f"❌ NPI registry request failed for {npi}: {e}")
            raise HTTPException(status_code=502, detail="NPI registry temporarily unavailable") from e

        result = parse_npi_record(record)
        logger.info(f"🏥 NPI lookup {npi}: found={result.found}")

        try:
            get_redis_client().setex(cache_key, NPI_CACHE_SECONDS, json.dumps(result.model_dump()))
        except Exception as e:
            logger.warning(f"Redis cache write error: {e}")

        return result
