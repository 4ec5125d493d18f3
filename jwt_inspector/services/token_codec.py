"""
Compact token decoding without signature verification.

Splits a compact JWS into its segments, base64url-decodes the header and
payload, and parses them as JSON objects. Also provides the advisory expiry
check and the display annotation for temporal claims.

Nothing here touches key material: decoded claims must NOT be trusted for
any access decision.
"""

import base64
import binascii
import json
import logging
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, Optional

from jwt_inspector.core.errors import (
    InvalidEncodingError,
    InvalidJSONError,
    MalformedTokenError,
)
from jwt_inspector.schemas.token import DecodedToken, ExpiryStatus

logger = logging.getLogger(__name__)

TEMPORAL_CLAIMS = ("exp", "iat", "nbf")


def base64url_decode(segment: str) -> bytes:
    """
    Decode a base64url segment, restoring stripped padding.

    Raises:
        binascii.Error: If the segment is not valid base64
    """
    data = segment.replace("-", "+").replace("_", "/")
    pad = len(data) % 4
    if pad:
        data += "=" * (4 - pad)
    return base64.b64decode(data, validate=True)


def _decode_segment(segment: str, name: str) -> Dict[str, Any]:
    try:
        text = base64url_decode(segment).decode("utf-8")
    except (binascii.Error, ValueError) as e:
        # UnicodeDecodeError is a ValueError
        logger.debug(
            "Token segment is not valid base64url/UTF-8",
            extra={"segment": name, "error": str(e)},
        )
        raise InvalidEncodingError(f"Invalid base64 string in {name}", segment=name)

    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        logger.debug(
            "Token segment is not valid JSON",
            extra={"segment": name, "error": str(e)},
        )
        raise InvalidJSONError(f"Invalid JSON in {name}: {e.msg}", segment=name)

    if not isinstance(value, dict):
        raise InvalidJSONError(f"Invalid JSON in {name}: expected an object", segment=name)

    return value


def decode_token(token: str) -> DecodedToken:
    """
    Decode a compact token into header and payload without verification.

    Args:
        token: Compact serialization (format: header.payload.signature).
            The signature segment may be empty or missing.

    Returns:
        DecodedToken with header, payload and raw signature segment

    Raises:
        MalformedTokenError: If the header or payload segment is missing
        InvalidEncodingError: If a segment is not base64url-encoded UTF-8
        InvalidJSONError: If a segment is not a JSON object

    Example:
        >>> decoded = decode_token(
        ...     "eyJhbGciOiJIUzI1NiJ9.eyJzdWIiOiIxMjM0NTY3ODkwIn0.signature"
        ... )
        >>> decoded.header
        {'alg': 'HS256'}
        >>> decoded.payload
        {'sub': '1234567890'}
    """
    parts = token.strip().split(".")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise MalformedTokenError()

    header = _decode_segment(parts[0], "header")
    payload = _decode_segment(parts[1], "payload")
    signature = parts[2] if len(parts) > 2 else ""

    return DecodedToken(header=header, payload=payload, signature=signature)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def check_expiry(payload: Dict[str, Any], now: Optional[datetime] = None) -> ExpiryStatus:
    """
    Advisory expiry check based on the 'exp' claim.

    Tokens without a numeric 'exp' are not flagged. An expired token is
    still a decodable token; callers surface this as a warning only.

    Args:
        payload: Decoded claims
        now: Reference instant (defaults to the current UTC time)

    Returns:
        ExpiryStatus.EXPIRED if now is later than exp, ExpiryStatus.VALID
        otherwise, ExpiryStatus.NO_EXPIRY if exp is absent
    """
    exp = payload.get("exp")
    if not _is_number(exp):
        return ExpiryStatus.NO_EXPIRY

    if now is None:
        now = datetime.now(timezone.utc)
    now_ms = now.timestamp() * 1000

    if exp * 1000 < now_ms:
        return ExpiryStatus.EXPIRED
    return ExpiryStatus.VALID


def format_timestamp(timestamp: float, tz: Optional[tzinfo] = None) -> str:
    """Render epoch seconds as local time; falls back to the raw number."""
    try:
        moment = datetime.fromtimestamp(timestamp, tz=timezone.utc).astimezone(tz)
    except (OverflowError, OSError, ValueError):
        return str(timestamp)
    return moment.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def annotate_temporal_claims(
    payload: Dict[str, Any], tz: Optional[tzinfo] = None
) -> Dict[str, Any]:
    """
    Return a display copy of the payload with exp/iat/nbf annotated.

    Each present, non-zero numeric claim becomes "<raw> (<local time>)".
    The input payload is left untouched.
    """
    formatted = dict(payload)
    for claim in TEMPORAL_CLAIMS:
        value = formatted.get(claim)
        if _is_number(value) and value:
            formatted[claim] = f"{value} ({format_timestamp(value, tz)})"
    return formatted
