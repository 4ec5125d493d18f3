# Schemas package

from jwt_inspector.schemas.token import (
    DecodedToken,
    ExpiryStatus,
    InspectionResult,
    JSONWebKey,
    JSONWebKeySet,
    VerificationError,
    VerificationOutcome,
    VerificationStatus,
)

__all__ = [
    "DecodedToken",
    "ExpiryStatus",
    "InspectionResult",
    "JSONWebKey",
    "JSONWebKeySet",
    "VerificationError",
    "VerificationOutcome",
    "VerificationStatus",
]
