"""Schemas for token decoding, key sets and verification outcomes."""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from jwt_inspector.core.config import settings


NO_KEY_ID = "none"
"""Key ID reported when the token header carries no 'kid'."""

EXPIRED_WARNING = "Warning: This token has expired"


class ExpiryStatus(str, Enum):
    """Advisory expiry state derived from the 'exp' claim."""

    EXPIRED = "expired"
    VALID = "valid"
    NO_EXPIRY = "no_expiry"


class VerificationStatus(str, Enum):
    """Top-level verification result."""

    VERIFIED = "verified"
    FAILED = "failed"


class VerificationError(str, Enum):
    """Reason a verification attempt did not succeed."""

    INVALID_KEY_SET = "invalid_key_set"
    NO_MATCHING_KEY = "no_matching_key"
    UNSUPPORTED_ALGORITHM = "unsupported_algorithm"
    MALFORMED_TOKEN = "malformed_token"
    SIGNATURE_MISMATCH = "signature_mismatch"
    MALFORMED_KEY = "malformed_key"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_NOT_YET_VALID = "token_not_yet_valid"
    VERIFICATION_FAILED = "verification_failed"


class DecodedToken(BaseModel):
    """Header and payload of a compact token, decoded without verification."""

    header: Dict[str, Any] = Field(..., description="Decoded JOSE header")
    payload: Dict[str, Any] = Field(..., description="Decoded claims")
    signature: str = Field("", description="Raw base64url signature segment")


class JSONWebKey(BaseModel):
    """
    A single JWK (RFC 7517).

    Only the members used for key selection are modelled; all other members
    (n, e, x, y, ...) are preserved as extra fields and handed to PyJWT.
    """

    model_config = ConfigDict(extra="allow")

    kty: str = Field(..., description="Key type (RSA, EC, ...)")
    kid: Optional[str] = Field(None, description="Key ID")
    alg: Optional[str] = Field(None, description="Intended algorithm")
    use: Optional[str] = Field(None, description="Public key use (sig/enc)")
    crv: Optional[str] = Field(None, description="Curve for EC keys")

    def to_jwk_dict(self) -> Dict[str, Any]:
        """Return the key as a plain JWK dict, without unset optional members."""
        return self.model_dump(exclude_none=True)


class JSONWebKeySet(BaseModel):
    """A JWK Set as supplied by the caller; never fetched from the network."""

    keys: List[JSONWebKey] = Field(..., description="Candidate verification keys")


class VerificationOutcome(BaseModel):
    """
    Result of a signature verification attempt.

    Either verified (with algorithm and key ID) or failed (with an error
    code and a human-readable reason). Never partially verified.
    """

    status: VerificationStatus
    error: Optional[VerificationError] = None
    algorithm: Optional[str] = None
    key_id: Optional[str] = None
    reason: Optional[str] = None

    @property
    def verified(self) -> bool:
        return self.status == VerificationStatus.VERIFIED

    @computed_field  # type: ignore[prop-decorator]
    @property
    def message(self) -> str:
        """Banner text for the presentation layer."""
        if self.verified:
            return (
                f"Signature verified successfully "
                f"(algorithm: {self.algorithm}, key ID: {self.key_id})"
            )
        return f"Signature verification failed: {self.reason}"

    @classmethod
    def success(cls, algorithm: str, key_id: Optional[str]) -> "VerificationOutcome":
        return cls(
            status=VerificationStatus.VERIFIED,
            algorithm=algorithm,
            key_id=key_id if key_id is not None else NO_KEY_ID,
        )

    @classmethod
    def failure(
        cls,
        error: VerificationError,
        reason: str,
        algorithm: Optional[str] = None,
        key_id: Optional[str] = None,
    ) -> "VerificationOutcome":
        return cls(
            status=VerificationStatus.FAILED,
            error=error,
            reason=reason,
            algorithm=algorithm,
            key_id=key_id,
        )


class InspectionResult(BaseModel):
    """
    Everything the presentation layer needs to render one inspection.

    When decoding fails only ``error`` is set. Otherwise header and payload
    are always present, alongside an optional expiry warning and an
    optional verification outcome.
    """

    header: Optional[Dict[str, Any]] = None
    payload: Optional[Dict[str, Any]] = None
    payload_display: Optional[Dict[str, Any]] = Field(
        None, description="Payload copy with exp/iat/nbf annotated in local time"
    )
    expiry: Optional[ExpiryStatus] = None
    warning: Optional[str] = None
    verification: Optional[VerificationOutcome] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


# =============================================================================
# Request / response bodies
# =============================================================================


class DecodeRequest(BaseModel):
    """Body for POST /tokens/decode."""

    token: str = Field(..., max_length=settings.JWT_MAX_TOKEN_LENGTH)


class DecodeResponse(DecodedToken):
    """Decoded token plus its advisory expiry state."""

    expiry: ExpiryStatus


class VerifyRequest(BaseModel):
    """Body for POST /tokens/verify."""

    token: str = Field(..., max_length=settings.JWT_MAX_TOKEN_LENGTH)
    jwks: str = Field(
        ...,
        max_length=settings.JWT_MAX_JWKS_LENGTH,
        description="JWK Set JSON text, e.g. copied from an IdP's JWKS endpoint",
    )


class InspectRequest(BaseModel):
    """Body for POST /tokens/inspect."""

    token: str = Field("", max_length=settings.JWT_MAX_TOKEN_LENGTH)
    jwks: Optional[str] = Field(None, max_length=settings.JWT_MAX_JWKS_LENGTH)
