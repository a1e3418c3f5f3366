"""User service: account registration, credential checks and bearer token lifecycle."""
