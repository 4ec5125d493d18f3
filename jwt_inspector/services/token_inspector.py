"""
Token inspection: decode, expiry advisory and optional verification.

This is the single entry point the presentation layer calls with the two
text inputs (token and, optionally, JWK Set text). It never raises for bad
input; every outcome is carried in the returned InspectionResult:

- Decode failure: only ``error`` is set, nothing partial is returned
- Decoded token: header, payload and display payload are always returned
- Expired token: ``warning`` is set alongside the decoded data
- Key set given: ``verification`` holds the outcome, success or failure
"""

import logging
from datetime import datetime, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from jwt_inspector.core.config import settings
from jwt_inspector.core.errors import TokenDecodeError
from jwt_inspector.observability import jwt_decode_failures_total
from jwt_inspector.schemas.token import (
    EXPIRED_WARNING,
    ExpiryStatus,
    InspectionResult,
)
from jwt_inspector.services.signature_verifier import SignatureVerifier
from jwt_inspector.services.token_codec import (
    annotate_temporal_claims,
    check_expiry,
    decode_token,
)

logger = logging.getLogger(__name__)

EMPTY_TOKEN_ERROR = "Please enter a JWT token"


def get_display_timezone() -> Optional[tzinfo]:
    """Timezone for claim annotation; None means host local time."""
    if not settings.DISPLAY_TIMEZONE:
        return None
    try:
        return ZoneInfo(settings.DISPLAY_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(
            "Unknown display timezone, using local time",
            extra={"timezone": settings.DISPLAY_TIMEZONE},
        )
        return None


class TokenInspector:
    """Runs the full inspection pipeline for one token."""

    def __init__(self, verifier: Optional[SignatureVerifier] = None):
        self._verifier = verifier or SignatureVerifier()

    async def inspect(
        self,
        token: str,
        key_set_json: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> InspectionResult:
        """
        Inspect a token.

        Args:
            token: Compact token text
            key_set_json: Optional JWK Set text; blank means no verification
            now: Reference instant for the expiry check (defaults to now)

        Returns:
            InspectionResult for the presentation layer
        """
        if not token or not token.strip():
            return InspectionResult(error=EMPTY_TOKEN_ERROR, error_code="empty_token")

        try:
            decoded = decode_token(token)
        except TokenDecodeError as e:
            jwt_decode_failures_total.labels(code=e.code).inc()
            logger.info("Token decode failed", extra={"error_code": e.code})
            return InspectionResult(error=e.message, error_code=e.code)

        expiry = check_expiry(decoded.payload, now)
        result = InspectionResult(
            header=decoded.header,
            payload=decoded.payload,
            payload_display=annotate_temporal_claims(decoded.payload, get_display_timezone()),
            expiry=expiry,
            warning=EXPIRED_WARNING if expiry == ExpiryStatus.EXPIRED else None,
        )

        if key_set_json and key_set_json.strip():
            result.verification = await self._verifier.verify(token, key_set_json)

        return result


def get_token_inspector() -> TokenInspector:
    """FastAPI dependency returning a fresh TokenInspector."""
    return TokenInspector()
