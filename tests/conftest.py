import os
import time
import uuid
from datetime import date, timedelta

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_ENABLED"] = "false"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from chautari import rate_limiter, storage
from chautari.database import Base, SessionLocal, engine
from chautari.main import app
from chautari.models import Agency, AgencyMember, Profile


def make_token(user_id, email=None, expires_in=3600, audience="authenticated", secret="test-jwt-secret"):
    claims = {
        "sub": user_id,
        "email": email or f"{user_id[:8]}@example.com",
        "aud": audience,
        "exp": int(time.time()) + expires_in,
    }
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_headers(profile):
    return {"Authorization": f"Bearer {make_token(profile.id, profile.email)}"}


class FakeStorageClient:
    """In-memory stand-in for the boto3 S3 client"""

    def __init__(self):
        self.objects = {}
        self.fail_uploads = False

    def put_object(self, Bucket, Key, Body, ContentType=None, Metadata=None):
        if self.fail_uploads:
            from botocore.exceptions import ClientError

            raise ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")
        self.objects[Key] = {"body": Body, "content_type": ContentType, "metadata": Metadata}
        return {}

    def delete_object(self, Bucket, Key):
        self.objects.pop(Key, None)
        return {}

    def generate_presigned_url(self, operation, Params=None, ExpiresIn=None):
        return f"https://storage.test/{Params['Key']}?expires={ExpiresIn}"


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    rate_limiter.memory_cache.clear()
    yield
    rate_limiter.memory_cache.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def fake_storage(monkeypatch):
    fake = FakeStorageClient()
    monkeypatch.setattr(storage, "get_storage_client", lambda: fake)
    return fake


def create_profile(db, role="patient", full_name="Test User", email=None):
    profile = Profile(
        id=str(uuid.uuid4()),
        role=role,
        full_name=full_name,
        email=email or f"{uuid.uuid4().hex[:8]}@example.com",
        preferred_lang="en",
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


def create_agency(db, **overrides):
    values = {
        "npi": str(uuid.uuid4().int)[:10],
        "name": "Sunrise Home Care",
        "address_line1": "100 Market Street",
        "address_city": "Harrisburg",
        "address_state": "PA",
        "address_zip": "17101",
        "phone": "+17175550100",
        "care_types": ["home_care"],
        "payers_accepted": ["medicaid", "private"],
        "services_offered": ["personal_care", "companionship"],
        "languages_spoken": ["en", "ne"],
        "service_counties": ["Dauphin"],
        "is_active": True,
        "is_approved": True,
        "is_accepting_patients": True,
    }
    values.update(overrides)
    agency = Agency(**values)
    db.add(agency)
    db.commit()
    db.refresh(agency)
    return agency


def add_member(db, agency, profile, role="staff"):
    membership = AgencyMember(agency_id=agency.id, user_id=profile.id, role=role, is_active=True)
    db.add(membership)
    db.commit()
    db.refresh(membership)
    return membership


def switch_payload(agency_id, **overrides):
    payload = {
        "new_agency_id": agency_id,
        "confirmed_agency": True,
        "has_current_agency": "yes",
        "current_agency_name": "Old Agency LLC",
        "switch_reason": "communication",
        "care_type": "home_care",
        "services_requested": ["personal_care"],
        "requested_start_date": (date.today() + timedelta(days=14)).isoformat(),
        "consent_hipaa": True,
        "consent_current_agency_notification": True,
        "consent_terms": True,
        "understands_timeline": True,
        "signature_name": "Maya Gurung",
        "signature_method": "typed",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def patient(db):
    return create_profile(db, role="patient", full_name="Maya Gurung")


@pytest.fixture
def other_patient(db):
    return create_profile(db, role="patient", full_name="Ram Thapa")


@pytest.fixture
def admin(db):
    return create_profile(db, role="chautari_admin", full_name="Platform Admin")


@pytest.fixture
def agency(db):
    return create_agency(db)


@pytest.fixture
def other_agency(db):
    return create_agency(db, name="Keystone Nursing", address_city="Lancaster", service_counties=["Lancaster"])


@pytest.fixture
def agency_admin(db, agency):
    profile = create_profile(db, role="agency_admin", full_name="Agency Owner")
    add_member(db, agency, profile, role="owner")
    return profile


@pytest.fixture
def agency_staff(db, agency):
    profile = create_profile(db, role="agency_staff", full_name="Intake Coordinator")
    add_member(db, agency, profile, role="staff")
    return profile


@pytest.fixture
def outside_staff(db, other_agency):
    profile = create_profile(db, role="agency_staff", full_name="Other Staff")
    add_member(db, other_agency, profile, role="staff")
    return profile


@pytest.fixture
def switch_request(client, patient, agency):
    resp = client.post("/switch-requests", json=switch_payload(agency.id), headers=auth_headers(patient))
    assert resp.status_code == 201, resp.text
    return resp.json()
