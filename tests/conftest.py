"""
Pytest configuration and fixtures for testing.

Provides real RSA and EC key pairs and a factory that signs tokens with
PyJWT. Plain helpers for JWKs and hand-built tokens live in token_factory.
"""

from pathlib import Path
from typing import Any, Callable, Dict, Optional

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa


def pytest_configure(config):
    """
    Pytest hook that runs before test collection.

    Loads .env.test so that TESTING=true is set before any application
    modules (and their logging configuration) are imported.
    """
    from dotenv import load_dotenv

    test_env_path = Path(__file__).parent.parent / ".env.test"
    if test_env_path.exists():
        load_dotenv(test_env_path, override=True)


# =============================================================================
# Key Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """RSA 2048-bit private key shared across the session (generation is slow)."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_private_key() -> rsa.RSAPrivateKey:
    """A second, unrelated RSA key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def ec_p256_private_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ec_p384_private_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP384R1())


@pytest.fixture(scope="session")
def ec_p521_private_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP521R1())


@pytest.fixture
def sign_token() -> Callable[..., str]:
    """
    Factory signing a payload with PyJWT.

    Usage:
        token = sign_token({"sub": "user-1"}, private_key, "RS256", kid="key-1")
    """

    def _sign(
        payload: Dict[str, Any],
        private_key: Any,
        algorithm: str,
        kid: Optional[str] = None,
    ) -> str:
        headers = {"kid": kid} if kid is not None else None
        return jwt.encode(payload, private_key, algorithm=algorithm, headers=headers)

    return _sign
