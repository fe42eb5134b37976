"""Auth API — registration, email confirmation, login.

Learn: Routes for the credential flow:
- POST /Authentication/Register     → create unconfirmed user, mail link
- GET  /Authentication/ConfirmEmail → apply the mailed link
- POST /Authentication/Login        → email/password → JWT token

Failures raise AuthError subclasses; the handler in main.py renders
them as {"result": false, "errors": [...]} with the error's status.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import settings
from storefront.db.engine import get_db
from storefront.schemas.auth import AuthResult, LoginRequest, RegisterRequest
from storefront.services.auth_service import AuthError, AuthService
from storefront.services.credential_store import CredentialStore
from storefront.services.mail import MailDispatcher, get_mailer

router = APIRouter(prefix="/Authentication")

CONFIRM_EMAIL_PATH = "/api/Authentication/ConfirmEmail"


def _svc(
    db: AsyncSession = Depends(get_db),
    mailer: MailDispatcher = Depends(get_mailer),
) -> AuthService:
    return AuthService(
        store=CredentialStore(db),
        mailer=mailer,
        confirm_url=settings.public_base_url.rstrip("/") + CONFIRM_EMAIL_PATH,
    )


# ─── Register ────────────────────────────────────────────


@router.post("/Register", response_model=AuthResult, response_model_exclude_none=True)
async def register(body: RegisterRequest, svc: AuthService = Depends(_svc)):
    """Create a new, unconfirmed account and send the confirmation email."""
    db = svc.store.db
    try:
        await svc.register(body.email, body.password)
    except AuthError:
        # Nothing from a failed registration is kept, including a user
        # whose confirmation mail could not be sent.
        await db.rollback()
        raise
    await db.commit()
    return AuthResult(result=True)


# ─── Login ───────────────────────────────────────────────


@router.post("/Login", response_model=AuthResult)
async def login(body: LoginRequest, svc: AuthService = Depends(_svc)):
    """Login with email and password → JWT token."""
    token = await svc.login(body.email, body.password)
    return AuthResult(result=True, token=token)


# ─── Confirm email ───────────────────────────────────────


@router.get("/ConfirmEmail", response_class=PlainTextResponse)
async def confirm_email(
    user_id: str = Query("", alias="userId"),
    code: str = Query(""),
    svc: AuthService = Depends(_svc),
):
    """Apply the link from the confirmation email."""
    status = await svc.confirm_email(user_id, code)
    await svc.store.db.commit()
    return status
