"""Accounts, directory contract and the authentication coordinator."""
