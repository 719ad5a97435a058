import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import database
from app_logging import setup_logger
from config import DEFAULT_JWT_SECRET, Settings
from errors import (
    AccountServiceError,
    DuplicateEmail,
    InvalidCredentials,
    Unauthorized,
    ValidationError,
    internal_errors,
)
from mailer import SmtpMailer
from reset_tokens import consume_reset, request_reset
from schemas import (
    Account,
    ForgotPasswordRequest,
    MeResponse,
    MessageResponse,
    ResetPasswordRequest,
    SigninRequest,
    SigninResponse,
    SignupRequest,
    UserProfile,
    normalize_email,
)
from security import PasswordHasher, SessionTokens

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# -------------------- Dependencies --------------------
def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request):
    return request.app.state.store


def get_mailer(request: Request):
    return request.app.state.mailer


def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def get_session_tokens(request: Request) -> SessionTokens:
    return request.app.state.session_tokens


def get_current_account(
    authorization: Optional[str] = Header(None),
    store=Depends(get_store),
    tokens: SessionTokens = Depends(get_session_tokens),
) -> Account:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise Unauthorized()
    account_id = tokens.verify(authorization.split(" ", 1)[1].strip())
    with internal_errors("account lookup"):
        account = store.find_by_id(account_id)
    if account is None:
        raise Unauthorized()
    return account


# -------------------- Error handlers --------------------
async def account_error_handler(request: Request, exc: AccountServiceError) -> JSONResponse:
    if exc.status_code < 500:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("%s %s rejected: invalid body", request.method, request.url.path)
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


# -------------------- Root & Health --------------------
def read_root():
    return {"message": "Quiz Campus account service"}


def database_status(store=Depends(get_store)):
    """Check whether the account store answers."""
    response = {"backend": "running", "database": "not available"}
    try:
        store.ping()
        response["database"] = "connected"
    except Exception:
        logger.exception("Database ping failed")
        response["database"] = "error"
    return response


# -------------------- Auth Endpoints --------------------
def signup(payload: SignupRequest, store=Depends(get_store),
           hasher: PasswordHasher = Depends(get_hasher)):
    if payload.password != payload.confirm_password:
        raise ValidationError()

    email = normalize_email(payload.email)
    with internal_errors("signup"):
        if store.find_by_email(email):
            raise DuplicateEmail()

        now = _now()
        account = Account(
            id=database.new_account_id(),
            fullname=payload.fullname,
            email=email,
            password_hash=hasher.hash(payload.password),
            school=payload.school,
            created_at=now,
            updated_at=now,
        )
        # The unique index still rejects a concurrent signup that passed the check above.
        store.create(account)
    logger.info("Account %s created", account.id)
    return MessageResponse(message="Signup successful")


def signin(payload: SigninRequest, store=Depends(get_store),
           hasher: PasswordHasher = Depends(get_hasher),
           tokens: SessionTokens = Depends(get_session_tokens)):
    with internal_errors("signin"):
        account = store.find_by_email(normalize_email(payload.email))
        if not account or not hasher.verify(payload.password, account.password_hash):
            raise InvalidCredentials()
        token = tokens.issue(account.id)
    logger.info("Account %s signed in", account.id)
    return SigninResponse(message="Login successful", token=token, user=UserProfile.from_account(account))


def forgot_password(payload: ForgotPasswordRequest, store=Depends(get_store),
                    mailer=Depends(get_mailer), settings: Settings = Depends(get_settings)):
    # Unknown emails answer 404, which tells the caller whether an account exists.
    with internal_errors("forgot-password"):
        request_reset(store, mailer, settings, payload.email)
    return MessageResponse(message="Password reset email sent")


def reset_password(payload: ResetPasswordRequest, store=Depends(get_store),
                   hasher: PasswordHasher = Depends(get_hasher)):
    with internal_errors("reset-password"):
        consume_reset(store, hasher, payload.token, payload.new_password)
    return MessageResponse(message="Password has been reset")


def me(account: Account = Depends(get_current_account)):
    return MeResponse(id=account.id, fullname=account.fullname, email=account.email, school=account.school)


# -------------------- App factory --------------------
def create_app(settings: Optional[Settings] = None, store=None, mailer=None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logger(settings.log_level)

    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("JWT_SECRET is not set, using the development default.")

    app = FastAPI(title="Quiz Campus Accounts API")
    app.state.settings = settings
    app.state.store = store if store is not None else database.connect(settings)
    app.state.mailer = mailer if mailer is not None else SmtpMailer.from_settings(settings)
    app.state.hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.session_tokens = SessionTokens(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(seconds=settings.session_token_ttl),
    )

    logger.info("cors origins: %s", ",".join(settings.cors_origins))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AccountServiceError, account_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    @app.on_event("startup")
    def ensure_indexes():
        app.state.store.ensure_indexes()

    app.get("/")(read_root)
    app.get("/test")(database_status)
    app.post("/signup", status_code=201, response_model=MessageResponse)(signup)
    app.post("/signin", response_model=SigninResponse)(signin)
    app.post("/forgot-password", response_model=MessageResponse)(forgot_password)
    app.post("/reset-password", response_model=MessageResponse)(reset_password)
    app.get("/me", response_model=MeResponse)(me)
    return app


if __name__ == "__main__":
    import uvicorn
    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
