"""Authentication workflow tests — AuthService against a real store."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from storefront.auth import password as password_module
from storefront.auth.codes import encode_code
from storefront.auth.jwt import verify_token
from storefront.db.models import User
from storefront.services.auth_service import (
    CONFIRM_FAILED_STATUS,
    CONFIRMED_STATUS,
    AuthService,
    CredentialCreationError,
    DuplicateEmailError,
    EmailNotConfirmedError,
    InvalidCredentialsError,
    InvalidLinkError,
    MailDispatchError,
    UserNotFoundError,
    ValidationError,
)
from storefront.services.credential_store import CredentialStore

CONFIRM_URL = "http://test/api/Authentication/ConfirmEmail"


@pytest.fixture()
def service(db_session, mailer):
    return AuthService(CredentialStore(db_session), mailer, confirm_url=CONFIRM_URL)


async def _user_count(db_session) -> int:
    return await db_session.scalar(select(func.count()).select_from(User))


async def _registered_and_confirmed(service, mailer, email="a@x.com", password="Secret1!"):
    await service.register(email, password)
    user_id, code = mailer.last_confirmation()
    assert await service.confirm_email(user_id, code) == CONFIRMED_STATUS
    return user_id


# ═══════════════════════════════════════════════════════════
# Register
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_creates_one_unconfirmed_user_and_one_mail(service, mailer, db_session):
    await service.register("a@x.com", "Secret1!")

    assert await _user_count(db_session) == 1
    user = await service.store.find_by_email("a@x.com")
    assert user.email_confirmed is False

    assert len(mailer.sent) == 1
    mail = mailer.sent[0]
    assert mail.to == "a@x.com"
    assert mail.subject == "Confirm your email"
    assert mail.html_body.startswith("Please confirm your account by <a href='")
    user_id, _ = mailer.last_confirmation()
    assert user_id == str(user.id)
    assert mailer.last_link().startswith(CONFIRM_URL + "?")


@pytest.mark.asyncio
async def test_register_duplicate_email_does_not_mutate(service, mailer, db_session):
    await service.register("a@x.com", "Secret1!")

    with pytest.raises(DuplicateEmailError) as exc:
        await service.register("A@X.com", "Another1!")

    assert exc.value.errors == ["Email already exists"]
    assert await _user_count(db_session) == 1
    assert len(mailer.sent) == 1


@pytest.mark.asyncio
async def test_register_losing_race_to_same_email_reports_creation_error(
    service, mailer, db_session, monkeypatch
):
    await service.register("a@x.com", "Secret1!")
    await db_session.commit()

    # A concurrent request that passed the lookup before the first commit.
    monkeypatch.setattr(service.store, "find_by_email", AsyncMock(return_value=None))
    with pytest.raises(CredentialCreationError) as exc:
        await service.register("A@X.COM", "Another1!")

    assert exc.value.errors == ["Email already exists"]
    assert await _user_count(db_session) == 1
    assert len(mailer.sent) == 1


@pytest.mark.asyncio
async def test_register_weak_password_returns_store_errors(service, mailer, db_session):
    with pytest.raises(CredentialCreationError) as exc:
        await service.register("a@x.com", "weak")

    assert "Passwords must have at least one digit ('0'-'9')." in exc.value.errors
    assert await _user_count(db_session) == 0
    assert mailer.sent == []


@pytest.mark.asyncio
@pytest.mark.parametrize("email,password", [
    ("", "Secret1!"),
    ("not-an-email", "Secret1!"),
    ("a@x.com", ""),
])
async def test_register_rejects_malformed_input(service, email, password):
    with pytest.raises(ValidationError):
        await service.register(email, password)


@pytest.mark.asyncio
async def test_register_wraps_mail_failure(service, mailer):
    mailer.fail = True
    with pytest.raises(MailDispatchError) as exc:
        await service.register("a@x.com", "Secret1!")
    assert exc.value.status_code == 503
    assert isinstance(exc.value.__cause__, ConnectionRefusedError)


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_unknown_email(service):
    with pytest.raises(InvalidCredentialsError) as exc:
        await service.login("nobody@x.com", "Secret1!")
    assert exc.value.errors == ["Invalid credentials"]


@pytest.mark.asyncio
async def test_login_unknown_email_still_runs_bcrypt(service, monkeypatch):
    checked = []
    real_verify = password_module.verify_password

    def recording_verify(password, password_hash):
        checked.append(password_hash)
        return real_verify(password, password_hash)

    monkeypatch.setattr(password_module, "verify_password", recording_verify)

    with pytest.raises(InvalidCredentialsError):
        await service.login("nobody@x.com", "Secret1!")

    assert len(checked) == 1
    assert checked[0].startswith("$2b$12$")


@pytest.mark.asyncio
@pytest.mark.parametrize("password", ["Secret1!", "Wrong!"])
async def test_login_unconfirmed_fails_regardless_of_password(service, password):
    await service.register("a@x.com", "Secret1!")
    with pytest.raises(EmailNotConfirmedError):
        await service.login("a@x.com", password)


@pytest.mark.asyncio
async def test_login_wrong_password_issues_no_token(service, mailer, monkeypatch):
    await _registered_and_confirmed(service, mailer)

    issued = []
    monkeypatch.setattr(
        "storefront.services.auth_service.issue_token",
        lambda user: issued.append(user) or "token",
    )
    with pytest.raises(InvalidCredentialsError):
        await service.login("a@x.com", "Wrong!")
    assert issued == []


@pytest.mark.asyncio
async def test_login_success_returns_token_for_user(service, mailer):
    user_id = await _registered_and_confirmed(service, mailer)

    token = await service.login("a@x.com", "Secret1!")

    claims = verify_token(token)
    assert claims["Id"] == user_id
    assert claims["email"] == "a@x.com"
    assert claims["exp"] - claims["iat"] == 3600


# ═══════════════════════════════════════════════════════════
# Confirm email
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
@pytest.mark.parametrize("user_id,code", [("", "abc"), ("some-id", ""), (None, None)])
async def test_confirm_empty_link_parts_never_reach_store(mailer, user_id, code):
    store = AsyncMock(spec=CredentialStore)
    service = AuthService(store, mailer, confirm_url=CONFIRM_URL)

    with pytest.raises(InvalidLinkError):
        await service.confirm_email(user_id, code)

    assert store.method_calls == []


@pytest.mark.asyncio
async def test_confirm_unknown_user(service):
    with pytest.raises(UserNotFoundError) as exc:
        await service.confirm_email("00000000-0000-0000-0000-000000000000", "abc")
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_confirm_flips_flag(service, mailer):
    await service.register("a@x.com", "Secret1!")
    user_id, code = mailer.last_confirmation()

    assert await service.confirm_email(user_id, code) == CONFIRMED_STATUS
    assert (await service.store.find_by_id(user_id)).email_confirmed is True


@pytest.mark.asyncio
async def test_confirm_wrong_code_reports_failure(service, mailer):
    await service.register("a@x.com", "Secret1!")
    user_id, _ = mailer.last_confirmation()

    status = await service.confirm_email(user_id, encode_code("not-the-code"))
    assert status == CONFIRM_FAILED_STATUS
    assert (await service.store.find_by_id(user_id)).email_confirmed is False


@pytest.mark.asyncio
async def test_confirm_undecodable_code_reports_failure(service, mailer):
    await service.register("a@x.com", "Secret1!")
    user_id, _ = mailer.last_confirmation()
    assert await service.confirm_email(user_id, "abcde") == CONFIRM_FAILED_STATUS
