"""Registration, login and the request-level authentication dependencies."""

import logging
from typing import Generator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from prometheus_client import Counter
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import AuthError, ConflictError, Forbidden, InternalError
from .models.user import Role
from .schemas import LoginResponse, UserCreate, UserLogin, UserPublic, parse
from .stores import UserStore
from .tokens import Principal, SessionTokens

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
MISSING_AUTH_HEADER = "Missing or invalid Authorization header"

REGISTER_COUNTER = Counter("users_registered_total", "Total users registered")
LOGIN_FAILURE_COUNTER = Counter("login_failures_total", "Total rejected login attempts")

pwd_context = CryptContext(schemes=["argon2"], default="argon2", deprecated="auto")

security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def register_user(
    session: Session,
    username: str,
    email: str,
    password: str,
    role: Optional[str] = None,
    allow_admin: bool = True,
) -> UserPublic:
    """Create a user after checking username and email are unused.

    The uniqueness check and the insert share one transaction; a concurrent
    duplicate that slips past the check is caught by the unique indexes.
    """
    data = {"username": username, "email": email, "password": password}
    if role is not None:
        data["role"] = role
    payload = parse(UserCreate, data)
    if payload.role is Role.ADMIN and not allow_admin:
        raise Forbidden("Admin self-registration is disabled")

    password_hash = hash_password(payload.password)
    store = UserStore(session)
    try:
        if store.exists(payload.username, payload.email):
            session.rollback()
            raise ConflictError("Username or email already exists")
        user = store.add(payload.username, payload.email, password_hash, payload.role.value)
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.info("duplicate registration rejected by constraint: %s", payload.username)
        raise ConflictError("Username or email already exists") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("failed to register user %s", payload.username)
        raise InternalError() from exc

    REGISTER_COUNTER.inc()
    logger.info("registered user id=%s role=%s", user.id, user.role)
    return UserPublic.model_validate(user)


def login_user(
    session: Session, tokens: SessionTokens, email: str, password: str
) -> LoginResponse:
    """Exchange email and password for a session token.

    Unknown email and wrong password fail with the same error.
    """
    payload = parse(UserLogin, {"email": email, "password": password})
    try:
        user = UserStore(session).find_by_email(payload.email)
    except SQLAlchemyError as exc:
        logger.exception("failed to look up user for login")
        raise InternalError() from exc

    if user is None:
        pwd_context.dummy_verify()
        ok = False
    else:
        ok = verify_password(payload.password, user.password_hash)
    if not ok:
        LOGIN_FAILURE_COUNTER.inc()
        raise AuthError(INVALID_CREDENTIALS)

    token = tokens.issue(user.id, user.role)
    logger.info("login user id=%s", user.id)
    return LoginResponse(token=token, user=UserPublic.model_validate(user))


def get_db(request: Request) -> Generator[Session, None, None]:
    """Provide one session per request from the app's injected factory."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_tokens(request: Request) -> SessionTokens:
    return request.app.state.tokens


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    tokens: SessionTokens = Depends(get_tokens),
) -> Principal:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError(MISSING_AUTH_HEADER)
    return tokens.verify(credentials.credentials)


def require_role(*roles: Role):
    """Dependency factory rejecting principals whose role is not listed."""

    def role_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in roles:
            raise Forbidden(
                "Access denied. Required role: " + ", ".join(r.value for r in roles)
            )
        return principal

    return role_checker
