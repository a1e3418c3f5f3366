"""Password hashing, token issuance and revocation."""
