"""
Algorithm policy for JWT signature verification.

Verification material is always a caller-supplied set of public keys, so
only asymmetric JWS algorithms are ever accepted. This module holds the
allow-list and the rules that map an algorithm to the JWK key type (and
curve) able to verify it.
"""

from typing import Any, Dict, Optional, Tuple

# RSASSA-PKCS1-v1_5 and ECDSA variants (RFC 7518 section 3.1)
RSA_ALGORITHMS: Tuple[str, ...] = ("RS256", "RS384", "RS512")
EC_ALGORITHMS: Tuple[str, ...] = ("ES256", "ES384", "ES512")
ASYMMETRIC_ALGORITHMS: Tuple[str, ...] = RSA_ALGORITHMS + EC_ALGORITHMS

# ECDSA algorithms are bound to a single curve
EC_CURVES: Dict[str, str] = {
    "ES256": "P-256",
    "ES384": "P-384",
    "ES512": "P-521",
}


def is_asymmetric_algorithm(alg: Optional[str]) -> bool:
    """Return True if alg is one of the supported asymmetric algorithms."""
    return alg in ASYMMETRIC_ALGORITHMS


def expected_key_type(alg: str) -> Optional[str]:
    """
    Return the JWK 'kty' able to verify signatures made with alg.

    Returns None for algorithms outside the asymmetric set (HMAC, 'none').
    """
    if alg in RSA_ALGORITHMS:
        return "RSA"
    if alg in EC_ALGORITHMS:
        return "EC"
    return None


def key_supports_algorithm(jwk: Dict[str, Any], alg: str) -> bool:
    """
    Check whether a JWK is usable for verifying a signature made with alg.

    A key qualifies when its key type matches the algorithm family, its curve
    matches for ECDSA, its optional 'alg' member equals alg, and its optional
    'use' member is 'sig'.

    Example:
        >>> key_supports_algorithm({"kty": "EC", "crv": "P-256"}, "ES256")
        True
        >>> key_supports_algorithm({"kty": "EC", "crv": "P-384"}, "ES256")
        False
    """
    kty = expected_key_type(alg)
    if kty is None or jwk.get("kty") != kty:
        return False

    if kty == "EC" and jwk.get("crv") != EC_CURVES[alg]:
        return False

    key_alg = jwk.get("alg")
    if key_alg is not None and key_alg != alg:
        return False

    use = jwk.get("use")
    if use is not None and use != "sig":
        return False

    return True
