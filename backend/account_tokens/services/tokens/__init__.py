"""Token issuance, rotation, validation and sign-out."""
