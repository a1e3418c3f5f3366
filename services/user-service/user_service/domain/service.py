"""Authentication service orchestrating the directory, hashing, tokens, and revocation."""

from __future__ import annotations

import logging

from schemas import TokenClaims

from .account import Account
from .contracts import AuthResult, CredentialsInput, RegistrationInput
from .directory import DuplicateIdentityError, UserDirectory
from .errors import AccountNotFound, IdentityAlreadyRegistered, InvalidCredentials, InvalidToken
from ..security.passwords import PasswordHasher
from ..security.revocation import RevocationRegistry
from ..security.tokens import TokenIssuer

logger = logging.getLogger(__name__)


class AuthService:
    """Register, authenticate and revoke on behalf of the HTTP boundary.

    This is the only layer that raises business errors: absence and mismatch
    signals from the collaborators are translated here.
    """

    def __init__(
        self,
        directory: UserDirectory,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        revocations: RevocationRegistry,
    ) -> None:
        """Store the collaborators; the revocation store is owned per service instance."""
        self._directory = directory
        self._hasher = hasher
        self._issuer = issuer
        self._revocations = revocations

    def register(self, payload: RegistrationInput) -> AuthResult:
        """Create an account and issue its first token.

        Raises
        ------
        IdentityAlreadyRegistered
            If an account with the same (case-insensitive) identity exists,
            including when a concurrent registration wins the insert.
        """
        logger.info("sign up attempt: %s", payload.identity)
        if self._directory.find_by_identity(payload.identity) is not None:
            logger.warning("sign up failed: identity already registered - %s", payload.identity)
            raise IdentityAlreadyRegistered(payload.identity)

        secret_hash = self._hasher.hash(payload.secret)
        try:
            account = self._directory.create(payload.identity, secret_hash, payload.roles or [])
        except DuplicateIdentityError as exc:
            logger.warning("sign up failed: identity registered concurrently - %s", payload.identity)
            raise IdentityAlreadyRegistered(payload.identity) from exc

        result = self._issue(account)
        logger.info("sign up successful: %s (%s)", account.identity, account.account_id)
        return result

    def authenticate(self, payload: CredentialsInput) -> AuthResult:
        """Verify credentials and issue a fresh token.

        Raises
        ------
        InvalidCredentials
            For an unknown identity and for a wrong secret alike.
        """
        logger.info("sign in attempt: %s", payload.identity)
        try:
            account = self._require_identity(payload.identity)
        except AccountNotFound as exc:
            logger.warning("sign in failed: unknown identity - %s", payload.identity)
            raise InvalidCredentials() from exc

        if not self._hasher.verify(payload.secret, account.secret_hash):
            logger.warning("sign in failed: secret mismatch - %s", payload.identity)
            raise InvalidCredentials()

        self._directory.touch(account.account_id)
        result = self._issue(account)
        logger.info("sign in successful: %s (%s)", account.identity, account.account_id)
        return result

    def revoke(self, token: str) -> None:
        """Permanently mark ``token`` as revoked, whether or not it was issued here."""
        if not token:
            raise ValueError("token must be a non-empty string")
        self._revocations.revoke(token, self._issuer.peek_expiry(token))
        logger.info("user logged out successfully")

    def is_revoked(self, token: str) -> bool:
        return self._revocations.is_revoked(token)

    def verify(self, token: str) -> TokenClaims:
        """Decode ``token`` and reject it when expired, forged or revoked."""
        claims = self._issuer.decode(token)
        if self._revocations.is_revoked(token):
            raise InvalidToken("token revoked")
        return claims

    def get_account(self, account_id: str) -> Account | None:
        """Retrieve an account by identifier."""
        return self._directory.find_by_id(account_id)

    def account_exists(self, account_id: str) -> bool:
        return self._directory.find_by_id(account_id) is not None

    def _require_identity(self, identity: str) -> Account:
        account = self._directory.find_by_identity(identity)
        if account is None:
            raise AccountNotFound(identity)
        return account

    def _issue(self, account: Account) -> AuthResult:
        token = self._issuer.issue(account.account_id, account.identity, account.roles)
        return AuthResult(
            access_token=token,
            expires_in=self._issuer.ttl_seconds,
            account=account.public_view(),
        )
