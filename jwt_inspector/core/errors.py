"""
Exception hierarchy for token decoding.

Decoding failures are raised by the codec and converted to result values
by the inspection service and the HTTP layer. Each error carries a stable
machine-readable ``code`` and a human-readable ``message``.
"""


class JWTInspectorError(Exception):
    """Base exception for the JWT Inspector."""

    code = "jwt_inspector_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TokenDecodeError(JWTInspectorError):
    """Raised when a compact token cannot be decoded."""

    code = "decode_error"


class MalformedTokenError(TokenDecodeError):
    """Token is not a compact serialization with header and payload segments."""

    code = "malformed_token"

    def __init__(self, message: str = "Invalid JWT format"):
        super().__init__(message)


class InvalidEncodingError(TokenDecodeError):
    """A segment is not valid base64url or does not decode to UTF-8 text."""

    code = "invalid_encoding"

    def __init__(self, message: str = "Invalid base64 string", segment: str | None = None):
        self.segment = segment
        super().__init__(message)


class InvalidJSONError(TokenDecodeError):
    """A segment decodes to text that is not a JSON object."""

    code = "invalid_json"

    def __init__(self, message: str = "Invalid JSON", segment: str | None = None):
        self.segment = segment
        super().__init__(message)
