"""FastAPI application exposing registration, login and task endpoints."""

from datetime import timedelta
from typing import List, Optional

import logging
from fastapi import APIRouter, Body, Depends, FastAPI, Path, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import services
from .auth import (
    get_current_principal,
    get_db,
    get_tokens,
    login_user,
    register_user,
    require_role,
)
from .config import Settings, get_settings
from .database import build_engine, build_session_factory, init_db
from .errors import TaskHubError, details_from_pydantic
from .models.task import TaskStatus
from .models.user import Role
from .schemas import (
    DEFAULT_PAGE_SIZE,
    LoginResponse,
    TaskCreate,
    TaskOut,
    TaskPage,
    TaskUpdate,
    UserCreate,
    UserLogin,
    UserPublic,
)
from .tokens import Principal, SessionTokens

logger = logging.getLogger(__name__)

# Prometheus counter to track API requests by method, endpoint and status code
REQUEST_COUNTER = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)

auth_router = APIRouter(prefix="/api/auth", tags=["auth"])
tasks_router = APIRouter(
    prefix="/api/tasks",
    tags=["tasks"],
    dependencies=[Depends(get_current_principal)],
)


async def log_requests(request: Request, call_next):
    """Log incoming requests and their outcomes while updating metrics."""
    logger.info("request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=request.url.path,
            status=str(response.status_code),
        ).inc()
        logger.info(
            "response %s %s status %s",
            request.method,
            request.url.path,
            response.status_code,
        )
        return response
    except Exception:
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=request.url.path,
            status="500",
        ).inc()
        logger.exception(
            "error handling %s %s", request.method, request.url.path
        )
        raise


async def handle_service_error(request: Request, exc: TaskHubError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Validation failed", "details": details_from_pydantic(exc.errors())},
    )


async def handle_http_error(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = f"Route not found: {request.method} {request.url.path}"
    else:
        message = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": message})


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal Server Error"},
    )


@auth_router.post("/register", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
def register(request: Request, user: UserCreate, db: Session = Depends(get_db)):
    """Register a new user and return its public fields."""
    settings: Settings = request.app.state.settings
    return register_user(
        db,
        username=user.username,
        email=user.email,
        password=user.password,
        role=user.role.value,
        allow_admin=settings.allow_admin_self_registration,
    )


@auth_router.post("/login", response_model=LoginResponse)
def login(
    user: UserLogin,
    db: Session = Depends(get_db),
    tokens: SessionTokens = Depends(get_tokens),
):
    return login_user(db, tokens, email=user.email, password=user.password)


@tasks_router.post("", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def post_task(
    payload: TaskCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Create a task owned by the caller."""
    return services.create_task(
        db,
        owner_id=principal.id,
        title=payload.title,
        description=payload.description,
        status=payload.status.value,
    )


@tasks_router.get("", response_model=TaskPage)
def get_tasks(
    status: Optional[TaskStatus] = None,
    all: bool = False,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Return a page of tasks; admins may pass ``all=true`` to see everyone's."""
    return services.list_tasks(
        db,
        principal,
        status=status.value if status else None,
        all=all,
        page=page,
        limit=limit,
    )


@tasks_router.get(
    "/admin/all-tasks",
    response_model=List[TaskOut],
    dependencies=[Depends(require_role(Role.ADMIN))],
)
def get_all_tasks(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Unfiltered list of every task, admin only."""
    return services.list_all_tasks(db, principal)


@tasks_router.get("/{task_id}", response_model=TaskOut)
def get_task(
    task_id: int = Path(..., ge=1),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return services.get_task(db, principal, task_id)


@tasks_router.patch("/{task_id}", response_model=TaskOut)
def patch_task(
    task_id: int = Path(..., ge=1),
    payload: TaskUpdate = Body(...),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Update only the fields present in the request body."""
    return services.update_task(
        db, principal, task_id, payload.model_dump(exclude_unset=True)
    )


@tasks_router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_task(
    task_id: int = Path(..., ge=1),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    services.delete_task(db, principal, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def health():
    return {"ok": True, "service": "taskhub"}


def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application with its own engine, session factory and signer."""
    settings = settings or get_settings()

    engine = build_engine(settings.database_url)
    init_db(engine)

    app = FastAPI(title=settings.api_title)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.tokens = SessionTokens(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(minutes=settings.token_expire_minutes),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(TaskHubError, handle_service_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.add_api_route("/health", health, methods=["GET"])
    app.add_api_route("/metrics", metrics, methods=["GET"], include_in_schema=False)
    app.include_router(auth_router)
    app.include_router(tasks_router)
    return app
