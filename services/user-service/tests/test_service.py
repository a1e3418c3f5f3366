from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from user_service.domain.contracts import CredentialsInput, RegistrationInput
from user_service.domain.directory import DuplicateIdentityError, InMemoryUserDirectory
from user_service.domain.errors import IdentityAlreadyRegistered, InvalidCredentials, InvalidToken
from user_service.domain.service import AuthService
from user_service.security.passwords import PasswordHasher
from user_service.security.revocation import InMemoryRevocationRegistry
from user_service.security.tokens import TokenIssuer


class RacingDirectory(InMemoryUserDirectory):
    """Directory whose lookups never see the competing registration."""

    def find_by_identity(self, identity: str):
        return None

    def create(self, identity, secret_hash, roles):
        raise DuplicateIdentityError(identity)


def _service(directory=None) -> AuthService:
    return AuthService(
        directory or InMemoryUserDirectory(),
        PasswordHasher(rounds=4),
        TokenIssuer(ttl_seconds=600),
        InMemoryRevocationRegistry(),
    )


@pytest.fixture
def service() -> AuthService:
    return _service()


def test_register_defaults_to_baseline_role(service):
    result = service.register(RegistrationInput(identity="alice@example.com", secret="longenough1"))
    assert result.account.roles == ["user"]
    assert result.expires_in == 600


def test_register_with_empty_roles_uses_baseline(service):
    result = service.register(
        RegistrationInput(identity="empty@example.com", secret="longenough1", roles=[])
    )
    assert result.account.roles == ["user"]


def test_register_normalizes_identity(service):
    result = service.register(RegistrationInput(identity="A@B.com", secret="longenough1"))
    assert result.account.identity == "a@b.com"
    assert service.get_account(result.account.id).identity == "a@b.com"


def test_register_duplicate_identity_raises(service):
    service.register(RegistrationInput(identity="bob@example.com", secret="x12345678"))
    with pytest.raises(IdentityAlreadyRegistered):
        service.register(RegistrationInput(identity="BOB@example.com", secret="other-secret"))


def test_register_maps_concurrent_insert_clash():
    service = _service(RacingDirectory())
    with pytest.raises(IdentityAlreadyRegistered):
        service.register(RegistrationInput(identity="race@example.com", secret="x12345678"))


def test_concurrent_registrations_admit_exactly_one():
    service = _service()
    workers = 8
    barrier = Barrier(workers)

    def attempt(_: int) -> str:
        barrier.wait()
        try:
            service.register(RegistrationInput(identity="same@example.com", secret="x12345678"))
        except IdentityAlreadyRegistered:
            return "conflict"
        return "created"

    with ThreadPoolExecutor(max_workers=workers) as pool:
        outcomes = list(pool.map(attempt, range(workers)))

    assert outcomes.count("created") == 1
    assert outcomes.count("conflict") == workers - 1


def test_authenticate_issues_new_token_and_touches_account(service):
    registered = service.register(RegistrationInput(identity="carol@example.com", secret="x12345678"))
    account = service.get_account(registered.account.id)
    before = account.updated_at

    result = service.authenticate(CredentialsInput(identity="Carol@Example.com", secret="x12345678"))

    assert result.access_token != registered.access_token
    assert result.account == registered.account
    assert service.get_account(registered.account.id).updated_at >= before


@pytest.mark.parametrize(
    "identity, secret",
    [
        ("dave@example.com", "wrong-secret"),
        ("dave@example.com", "X12345678"),
        ("dave@example.com", ""),
        ("nobody@example.com", "x12345678"),
    ],
)
def test_authenticate_failures_raise_invalid_credentials(service, identity, secret):
    service.register(RegistrationInput(identity="dave@example.com", secret="x12345678"))
    with pytest.raises(InvalidCredentials):
        service.authenticate(CredentialsInput(identity=identity, secret=secret))


def test_revoke_is_idempotent_and_isolated(service):
    service.revoke("token-a")
    service.revoke("token-a")
    assert service.is_revoked("token-a")
    assert not service.is_revoked("token-b")


def test_revoke_rejects_empty_token(service):
    with pytest.raises(ValueError):
        service.revoke("")


def test_verify_rejects_revoked_tokens(service):
    token = service.register(
        RegistrationInput(identity="erin@example.com", secret="x12345678")
    ).access_token

    claims = service.verify(token)
    assert claims.identity == "erin@example.com"

    service.revoke(token)
    with pytest.raises(InvalidToken):
        service.verify(token)


def test_end_to_end_scenario(service):
    first = service.register(RegistrationInput(identity="alice@example.com", secret="longenough1"))
    assert first.account.roles == ["user"]

    second = service.authenticate(CredentialsInput(identity="alice@example.com", secret="longenough1"))
    assert second.access_token != first.access_token

    with pytest.raises(InvalidCredentials):
        service.authenticate(CredentialsInput(identity="alice@example.com", secret="wrong"))

    service.revoke(second.access_token)
    assert service.is_revoked(second.access_token)
    assert not service.is_revoked(first.access_token)
