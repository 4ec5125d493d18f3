"""
Signature verification against a caller-supplied JWK Set.

The verifier never fetches keys: the key set arrives as JSON text (for
example, pasted from an identity provider's JWKS endpoint) and is parsed
into an in-memory lookup for a single verification. Every failure mode is
reported as a VerificationOutcome value rather than raised.

Verification flow:
1. Parse the key set text into a JSONWebKeySet
2. Re-parse the token's protected header (alg, kid)
3. Reject algorithms outside the asymmetric allow-list
4. Select candidate keys by kid and algorithm family
5. Verify the signature with PyJWT, one attempt per candidate
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import jwt
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    ImmatureSignatureError,
    InvalidKeyError,
    InvalidSignatureError,
    InvalidTokenError,
    PyJWKError,
)
from opentelemetry import trace
from pydantic import ValidationError

from jwt_inspector.core.config import settings
from jwt_inspector.core.errors import TokenDecodeError
from jwt_inspector.core.security import key_supports_algorithm
from jwt_inspector.observability import jwt_verifications_total
from jwt_inspector.schemas.token import (
    JSONWebKey,
    JSONWebKeySet,
    VerificationError,
    VerificationOutcome,
)
from jwt_inspector.services.token_codec import decode_token

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class InvalidKeySetError(ValueError):
    """Key set text is not a JWK Set."""


def parse_key_set(key_set_json: str) -> JSONWebKeySet:
    """
    Parse JWK Set text into a JSONWebKeySet.

    Args:
        key_set_json: JSON text of the form {"keys": [{"kty": ...}, ...]}

    Returns:
        Parsed key set (keys in input order)

    Raises:
        InvalidKeySetError: If the text is not JSON, lacks an array-valued
            'keys' member, or contains a key without 'kty'
    """
    try:
        data = json.loads(key_set_json)
    except (json.JSONDecodeError, TypeError) as e:
        raise InvalidKeySetError(f"Invalid JWKS format - not valid JSON ({e})")

    if not isinstance(data, dict) or not isinstance(data.get("keys"), list):
        raise InvalidKeySetError("Invalid JWKS format - missing keys array")

    try:
        return JSONWebKeySet.model_validate(data)
    except ValidationError as e:
        raise InvalidKeySetError(
            f"Invalid JWKS format - {e.error_count()} invalid key entries"
        )


def select_candidate_keys(
    key_set: JSONWebKeySet, alg: str, kid: Optional[str]
) -> List[JSONWebKey]:
    """
    Select the keys able to verify a token signed with alg.

    With a kid, only keys carrying exactly that kid are considered;
    without one, every key in the set is. Either way, keys of the wrong
    family (key type, curve, alg or use) are dropped.
    """
    if kid is not None:
        keys = [key for key in key_set.keys if key.kid == kid]
    else:
        keys = list(key_set.keys)
    return [key for key in keys if key_supports_algorithm(key.to_jwk_dict(), alg)]


class SignatureVerifier:
    """
    Verifies compact JWS tokens against caller-supplied public keys.

    Only asymmetric algorithms in the allow-list are accepted, which rules
    out downgrades to HMAC (using a public key as shared secret) or 'none'.
    """

    def __init__(self, allowed_algorithms: Optional[Sequence[str]] = None):
        """
        Initialize the verifier.

        Args:
            allowed_algorithms: Algorithm allow-list (uses config if not provided)
        """
        self.allowed_algorithms = list(allowed_algorithms or settings.JWT_ALLOWED_ALGORITHMS)

    async def verify(self, token: str, key_set_json: str) -> VerificationOutcome:
        """
        Verify the token's signature against the supplied key set.

        Args:
            token: Compact JWS (header.payload.signature)
            key_set_json: JWK Set as JSON text

        Returns:
            VerificationOutcome: verified with algorithm and key ID, or failed
            with an error code and reason
        """
        with tracer.start_as_current_span("jwt.verify") as span:
            outcome = self._verify(token.strip(), key_set_json)
            span.set_attribute("jwt.verification.status", outcome.status.value)
            if outcome.error is not None:
                span.set_attribute("jwt.verification.error", outcome.error.value)

        jwt_verifications_total.labels(
            result=outcome.error.value if outcome.error else outcome.status.value
        ).inc()
        return outcome

    def _verify(self, token: str, key_set_json: str) -> VerificationOutcome:
        try:
            key_set = parse_key_set(key_set_json)
        except InvalidKeySetError as e:
            logger.info("Rejected key set", extra={"error": str(e)})
            return VerificationOutcome.failure(VerificationError.INVALID_KEY_SET, str(e))

        # Header only: the signature segment is not examined before the allow-list
        try:
            header = decode_token(token).header
        except TokenDecodeError as e:
            logger.info("Token header could not be parsed", extra={"error_code": e.code})
            return VerificationOutcome.failure(
                VerificationError.MALFORMED_TOKEN, f"Malformed token header: {e.message}"
            )

        alg = header.get("alg")
        kid = header.get("kid")

        if kid is not None and not isinstance(kid, str):
            return VerificationOutcome.failure(
                VerificationError.MALFORMED_TOKEN,
                "Malformed token header: Key ID header parameter must be a string",
                algorithm=alg if isinstance(alg, str) else None,
            )

        # Security: Prevent algorithm confusion attacks
        if alg not in self.allowed_algorithms:
            logger.warning(
                "Unsupported or missing JWT algorithm",
                extra={"algorithm": alg, "expected": self.allowed_algorithms},
            )
            return VerificationOutcome.failure(
                VerificationError.UNSUPPORTED_ALGORITHM,
                f"Unsupported algorithm '{alg}' (allowed: {', '.join(self.allowed_algorithms)})",
                algorithm=alg if isinstance(alg, str) else None,
                key_id=kid,
            )

        candidates = select_candidate_keys(key_set, alg, kid)
        if not candidates:
            available_kids = [key.kid for key in key_set.keys]
            logger.info(
                "No matching key in JWKS",
                extra={
                    "algorithm": alg,
                    "requested_kid": kid,
                    "available_kids": available_kids,
                },
            )
            reason = (
                f"No key with ID '{kid}' usable for {alg} found in JWKS"
                if kid is not None
                else f"No key usable for {alg} found in JWKS"
            )
            return VerificationOutcome.failure(
                VerificationError.NO_MATCHING_KEY, reason, algorithm=alg, key_id=kid
            )

        first_failure: Optional[VerificationOutcome] = None
        for candidate in candidates:
            failure = self._verify_with_key(token, candidate.to_jwk_dict(), alg, kid)
            if failure is None:
                logger.info(
                    "Signature verified",
                    extra={"algorithm": alg, "kid": kid, "candidates": len(candidates)},
                )
                return VerificationOutcome.success(alg, kid)
            if first_failure is None:
                first_failure = failure

        logger.info(
            "Signature verification failed",
            extra={
                "algorithm": alg,
                "kid": kid,
                "candidates": len(candidates),
                "error": first_failure.error.value,
            },
        )
        return first_failure

    def _verify_with_key(
        self, token: str, jwk: Dict[str, Any], alg: str, kid: Optional[str]
    ) -> Optional[VerificationOutcome]:
        """Single verification attempt; returns None on success, else the failure."""
        try:
            signing_key = jwt.PyJWK(jwk, algorithm=alg).key
        except (PyJWKError, InvalidKeyError, ValueError, TypeError) as e:
            return VerificationOutcome.failure(
                VerificationError.MALFORMED_KEY,
                f"Malformed key: {e}",
                algorithm=alg,
                key_id=kid,
            )

        # Private JWKs (with 'd') verify with their public half
        if hasattr(signing_key, "public_key"):
            signing_key = signing_key.public_key()

        try:
            jwt.decode(
                token,
                key=signing_key,
                algorithms=[alg],
                options={
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_nbf": True,
                    "verify_iat": False,
                    "verify_aud": False,
                    "verify_iss": False,
                    "verify_sub": False,
                    "verify_jti": False,
                },
            )
        except InvalidSignatureError:
            error, reason = VerificationError.SIGNATURE_MISMATCH, "Signature does not match"
        except ExpiredSignatureError:
            error, reason = VerificationError.TOKEN_EXPIRED, "Token has expired (exp)"
        except ImmatureSignatureError:
            error, reason = VerificationError.TOKEN_NOT_YET_VALID, "Token is not yet valid (nbf)"
        except DecodeError as e:
            error, reason = VerificationError.MALFORMED_TOKEN, f"Malformed token: {e}"
        except (InvalidKeyError, AttributeError, TypeError) as e:
            error, reason = VerificationError.MALFORMED_KEY, f"Malformed key: {e}"
        except InvalidTokenError as e:
            error, reason = VerificationError.VERIFICATION_FAILED, str(e) or type(e).__name__
        else:
            return None

        return VerificationOutcome.failure(error, reason, algorithm=alg, key_id=kid)


def get_signature_verifier() -> SignatureVerifier:
    """
    FastAPI dependency returning a verifier configured from settings.

    A fresh instance per request; no key material is cached between calls.
    """
    return SignatureVerifier()
