"""Ed25519 signing and verification for submitted envelopes."""
