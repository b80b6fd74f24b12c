import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./chautari.db")

# Hosted auth (Supabase) - tokens are HS256 JWTs signed with the project secret
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
SUPABASE_JWT_AUDIENCE = os.getenv("SUPABASE_JWT_AUDIENCE", "authenticated")
if not SUPABASE_JWT_SECRET:
    import warnings

    warnings.warn(
        "SUPABASE_JWT_SECRET not set! Using insecure default - DO NOT USE IN PRODUCTION",
        RuntimeWarning,
        stacklevel=2,
    )
    SUPABASE_JWT_SECRET = "INSECURE-DEV-JWT-SECRET-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Encryption key for PHI columns (DOB, Medicaid ID)
# Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
PHI_ENCRYPTION_KEY = os.getenv("PHI_ENCRYPTION_KEY")

# S3-compatible document storage (Supabase Storage S3 endpoint, R2, or AWS S3)
STORAGE_ENDPOINT_URL = os.getenv("STORAGE_ENDPOINT_URL")
STORAGE_ACCESS_KEY_ID = os.getenv("STORAGE_ACCESS_KEY_ID")
STORAGE_SECRET_ACCESS_KEY = os.getenv("STORAGE_SECRET_ACCESS_KEY")
STORAGE_BUCKET_NAME = os.getenv("STORAGE_BUCKET_NAME", "documents")
STORAGE_REGION = os.getenv("STORAGE_REGION", "auto")
# Signed download links are short-lived (5 minutes)
DOCUMENT_URL_EXPIRATION = int(os.getenv("DOCUMENT_URL_EXPIRATION", "300"))

# Redis (rate limiting + realtime message fan-out)
REDIS_ENABLED = os.getenv("REDIS_ENABLED", "true").lower() == "true"

# Frontend base URL for links in notifications
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# CMS NPPES registry
NPI_REGISTRY_URL = os.getenv("NPI_REGISTRY_URL", "https://npiregistry.cms.hhs.gov/api/")

# Rate limits (requests per window, per client IP)
MESSAGE_RATE_LIMIT = int(os.getenv("MESSAGE_RATE_LIMIT", "30"))
UPLOAD_RATE_LIMIT = int(os.getenv("UPLOAD_RATE_LIMIT", "20"))
SWITCH_REQUEST_RATE_LIMIT = int(os.getenv("SWITCH_REQUEST_RATE_LIMIT", "10"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
