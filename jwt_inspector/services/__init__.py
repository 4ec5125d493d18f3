"""Token decoding, verification and inspection services."""
