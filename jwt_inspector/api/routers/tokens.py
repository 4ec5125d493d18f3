"""
Token inspection endpoints.

Endpoints:
- POST /tokens/decode: Decode header and payload without verification
- POST /tokens/verify: Verify a signature against a pasted JWK Set
- POST /tokens/inspect: Decode, expiry advisory and optional verification

Key sets are supplied in the request body (for example, copied from an
identity provider's JWKS endpoint); nothing is fetched server-side.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from jwt_inspector.core.errors import TokenDecodeError
from jwt_inspector.observability import jwt_decode_failures_total
from jwt_inspector.schemas.token import (
    DecodeRequest,
    DecodeResponse,
    InspectionResult,
    InspectRequest,
    VerificationOutcome,
    VerifyRequest,
)
from jwt_inspector.services.signature_verifier import (
    SignatureVerifier,
    get_signature_verifier,
)
from jwt_inspector.services.token_codec import check_expiry, decode_token
from jwt_inspector.services.token_inspector import TokenInspector, get_token_inspector

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tokens", tags=["tokens"])


@router.post(
    "/decode",
    response_model=DecodeResponse,
    summary="Decode a JWT without verification",
    responses={
        422: {"description": "Token is malformed, not base64url, or not JSON"},
    },
)
async def decode(body: DecodeRequest) -> DecodeResponse:
    """
    Decode a compact token into header and payload.

    The signature is NOT checked. Expiry is reported as an advisory field.

    Raises:
        HTTPException: 422 with the decode error code and message
    """
    try:
        decoded = decode_token(body.token)
    except TokenDecodeError as e:
        jwt_decode_failures_total.labels(code=e.code).inc()
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"error": e.code, "error_description": e.message},
        )

    return DecodeResponse(
        **decoded.model_dump(),
        expiry=check_expiry(decoded.payload),
    )


@router.post(
    "/verify",
    response_model=VerificationOutcome,
    summary="Verify a JWT signature against a JWK Set",
)
async def verify(
    body: VerifyRequest,
    verifier: Annotated[SignatureVerifier, Depends(get_signature_verifier)],
) -> VerificationOutcome:
    """
    Verify the token signature using keys from the supplied JWK Set.

    Always responds 200: an invalid key set, an unsupported algorithm, a
    missing key or a bad signature are all reported in the outcome.
    """
    return await verifier.verify(body.token, body.jwks)


@router.post(
    "/inspect",
    response_model=InspectionResult,
    summary="Decode a JWT and optionally verify its signature",
)
async def inspect(
    body: InspectRequest,
    inspector: Annotated[TokenInspector, Depends(get_token_inspector)],
) -> InspectionResult:
    """
    Full inspection as rendered by the JWT decoder page.

    Returns header, payload (raw and annotated for display), the expiry
    warning if applicable, and the verification outcome when a key set was
    provided. A decode failure yields only an error message.
    """
    return await inspector.inspect(body.token, body.jwks)
