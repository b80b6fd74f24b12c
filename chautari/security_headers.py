"""
Response hardening for the Chautari API.

Every JSON response carries health data, so responses are never cached, never
framed and never allowed to load sub-resources. HSTS is only sent in production
where TLS terminates in front of the app.
"""

import logging
import os
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"

API_CSP = "; ".join(["default-src 'none'", "frame-ancestors 'none'", "base-uri 'none'", "form-action 'none'"])
DISABLED_BROWSER_FEATURES = ("camera", "microphone", "geolocation", "payment", "usb", "interest-cohort")
NO_STORE = "no-store, no-cache, must-revalidate"


def build_security_headers(production: bool = IS_PRODUCTION) -> dict[str, str]:
    headers = {
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "no-referrer",
        "Content-Security-Policy": API_CSP,
        "Permissions-Policy": ", ".join(f"{feature}=()" for feature in DISABLED_BROWSER_FEATURES),
        "Cache-Control": NO_STORE,
    }
    if production:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds the hardening headers to every response outside exclude_paths"""

    def __init__(self, app, exclude_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.exclude_paths = tuple(exclude_paths or ())
        self.headers = build_security_headers()
        logger.info(f"🛡️ Security headers active ({len(self.headers)} headers)")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        if request.url.path.startswith(self.exclude_paths):
            return response

        for name, value in self.headers.items():
            # An endpoint-specific Cache-Control wins
            if name == "Cache-Control" and name in response.headers:
                continue
            response.headers[name] = value
        return response
