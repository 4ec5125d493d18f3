"""JWT Inspector: decode compact JWS tokens and verify them against a JWK Set."""
