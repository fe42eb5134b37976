"""Authentication workflow — register, confirm email, login.

Learn: This service is a straight sequence of calls into three
collaborators passed in by the caller:

    CredentialStore  → users, password checks, confirmation codes
    MailDispatcher   → sends the confirmation link
    issue_token()    → signs the JWT on successful login

Every failed check raises an AuthError subclass immediately, so a
token can only be issued after all login checks have passed.
Each AuthError carries the list of messages returned to the client.
"""

import html
import re
from urllib.parse import urlencode

import structlog

from storefront.auth.codes import CodeDecodeError, decode_code, encode_code
from storefront.auth.jwt import issue_token
from storefront.services.credential_store import CredentialStore
from storefront.services.mail import MailDispatcher

logger = structlog.get_logger()

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

CONFIRMED_STATUS = "Thank you for confirming your email"
CONFIRM_FAILED_STATUS = "There has been an error confirming your email"


class AuthError(Exception):
    """Base for every expected auth failure. Rendered as {result, errors}."""

    status_code = 400
    default_message = "Authentication error"

    def __init__(self, errors: list[str] | None = None):
        self.errors = list(errors) if errors else [self.default_message]
        super().__init__("; ".join(self.errors))


class ValidationError(AuthError):
    default_message = "Invalid payload"


class DuplicateEmailError(AuthError):
    default_message = "Email already exists"


class CredentialCreationError(AuthError):
    default_message = "Unable to create user"


class InvalidCredentialsError(AuthError):
    default_message = "Invalid credentials"


class EmailNotConfirmedError(AuthError):
    default_message = "Email needs to be confirmed"


class InvalidLinkError(AuthError):
    default_message = "Invalid email confirmation URL"


class UserNotFoundError(AuthError):
    status_code = 404
    default_message = "User not found"


class MailDispatchError(AuthError):
    status_code = 503
    default_message = "Unable to send the confirmation email. Please try again later."


class AuthService:
    """Orchestrates registration, email confirmation, and login."""

    def __init__(
        self,
        store: CredentialStore,
        mailer: MailDispatcher,
        confirm_url: str,
    ):
        self.store = store
        self.mailer = mailer
        self.confirm_url = confirm_url

    # ─── Register ────────────────────────────────────────

    async def register(self, email: str, password: str) -> None:
        """Create an unconfirmed user and mail the confirmation link.

        Raises MailDispatchError if the mail cannot be sent; the caller
        must not commit in that case, so the user is not persisted.
        """
        errors = []
        if not email or not _EMAIL_RE.match(email.strip()):
            errors.append("A valid email is required")
        if not password:
            errors.append("Password is required")
        if errors:
            raise ValidationError(errors)

        if await self.store.find_by_email(email):
            raise DuplicateEmailError()

        created = await self.store.create(email, password)
        if not created.succeeded:
            raise CredentialCreationError(created.errors)

        user = created.user
        code = await self.store.generate_confirmation_code(user)
        link = self.build_confirmation_link(str(user.id), code)
        body = (
            "Please confirm your account by "
            f"<a href='{html.escape(link, quote=True)}'><strong>clicking here</strong></a>"
        )
        try:
            await self.mailer.send(user.email, "Confirm your email", body)
        except Exception as e:
            logger.error(
                "storefront.auth.confirmation_mail_failed",
                user_id=str(user.id),
                error=str(e),
            )
            raise MailDispatchError() from e

        logger.info("storefront.auth.registered", user_id=str(user.id))

    def build_confirmation_link(self, user_id: str, code: str) -> str:
        query = urlencode({"userId": user_id, "code": encode_code(code)})
        return f"{self.confirm_url}?{query}"

    # ─── Login ───────────────────────────────────────────

    async def login(self, email: str, password: str) -> str:
        """Check credentials and return a signed access token."""
        user = await self.store.find_by_email(email or "")
        if user is None:
            # Same bcrypt cost as a wrong password.
            await self.store.check_password(None, password or "")
            raise InvalidCredentialsError()

        if not user.email_confirmed:
            raise EmailNotConfirmedError()

        if not await self.store.check_password(user, password or ""):
            logger.info("storefront.auth.login_failed", user_id=str(user.id))
            raise InvalidCredentialsError()

        logger.info("storefront.auth.login", user_id=str(user.id))
        return issue_token(user)

    # ─── Confirm email ───────────────────────────────────

    async def confirm_email(self, user_id: str | None, code: str | None) -> str:
        """Apply a confirmation link. Returns a human-readable status."""
        if not user_id or not code:
            raise InvalidLinkError()

        user = await self.store.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError([f"Unable to load user with Id '{user_id}'."])

        try:
            raw_code = decode_code(code)
        except CodeDecodeError:
            logger.info("storefront.auth.confirm_bad_code", user_id=user_id)
            return CONFIRM_FAILED_STATUS

        confirmed = await self.store.confirm_email(user, raw_code)
        return CONFIRMED_STATUS if confirmed else CONFIRM_FAILED_STATUS
