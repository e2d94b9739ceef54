import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError as PydanticValidationError

from auth import get_context, require_user
from context import AppContext, build_context
from errors import (
    CatalogError,
    DuplicateUsername,
    Forbidden,
    InvalidCredentials,
    InvalidToken,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from models import (
    Analytics,
    EventDraft,
    EventPage,
    EventPatch,
    EventRecord,
    EventStatus,
    LoginIn,
    MessageOut,
    PasswordUpdateIn,
    ProfilePatch,
    ProfileUpdateOut,
    RegisterIn,
    TokenClaims,
    TokenOut,
    UserOut,
)
from settings import settings
from uploads import URL_PREFIX

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# first match wins, so subclasses go before their bases
STATUS_CODES = [
    (Unauthenticated, 401),
    (InvalidCredentials, 401),
    (Forbidden, 403),
    (InvalidToken, 403),
    (ValidationError, 400),
    (DuplicateUsername, 400),
    (NotFound, 404),
]


def status_for(exc: CatalogError) -> int:
    for cls, code in STATUS_CODES:
        if isinstance(exc, cls):
            return code
    return 500


def _describe(errors: list) -> str:
    first = errors[0]
    loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path", "header")]
    where = ".".join(loc)
    return f"{where}: {first['msg']}" if where else first["msg"]


router = APIRouter(prefix="/api")


# ------------------------------------------------------------ identity


@router.post("/register", status_code=201, response_model=TokenOut)
def register(body: RegisterIn, ctx: AppContext = Depends(get_context)):
    user_id = ctx.credentials.register(body.username, body.password, body.display_name)
    identity = UserOut(id=user_id, username=body.username, display_name=body.display_name)
    return TokenOut(token=ctx.tokens.issue(identity, ctx.register_ttl))


@router.post("/login", response_model=TokenOut)
def login(body: LoginIn, ctx: AppContext = Depends(get_context)):
    try:
        user = ctx.credentials.verify_credential(body.username, body.password)
    except InvalidCredentials:
        logger.warning("failed login for %s", body.username)
        raise
    return TokenOut(token=ctx.tokens.issue(user, ctx.login_ttl))


@router.put("/password", response_model=MessageOut)
def update_password(
    body: PasswordUpdateIn,
    claims: TokenClaims = Depends(require_user),
    ctx: AppContext = Depends(get_context),
):
    ctx.credentials.update_password(claims.sub, body.current_password, body.new_password)
    return MessageOut(message="Password updated successfully")


@router.put("/profile", response_model=ProfileUpdateOut)
def update_profile(
    display_name: str | None = Form(None, alias="displayName"),
    subtitle: str | None = Form(None),
    description: str | None = Form(None),
    profile_image: UploadFile | None = File(None, alias="profileImage"),
    claims: TokenClaims = Depends(require_user),
    ctx: AppContext = Depends(get_context),
):
    with ctx.images.staged(profile_image) as image_ref:
        patch = ProfilePatch(
            display_name=display_name,
            subtitle=subtitle,
            description=description,
            profile_image=image_ref,
        )
        user = ctx.credentials.update_profile(claims.sub, patch)
    return ProfileUpdateOut(message="User profile updated successfully", user=user)


@router.get("/me", response_model=UserOut)
def me(claims: TokenClaims = Depends(require_user), ctx: AppContext = Depends(get_context)):
    return ctx.credentials.get_public_profile(claims.sub)


# -------------------------------------------------------------- events


@router.post("/events", status_code=201, response_model=EventRecord)
def create_event(
    name: str = Form(...),
    date: datetime = Form(...),
    location: str = Form(...),
    status: EventStatus = Form(...),
    description: str = Form(...),
    image: UploadFile | None = File(None),
    claims: TokenClaims = Depends(require_user),
    ctx: AppContext = Depends(get_context),
):
    draft = EventDraft(
        name=name, date=date, location=location, status=status, description=description
    )
    with ctx.images.staged(image) as image_ref:
        return ctx.event_service.create(claims.sub, draft, image_ref)


@router.get("/events/mine", response_model=List[EventRecord])
def my_events(claims: TokenClaims = Depends(require_user), ctx: AppContext = Depends(get_context)):
    return ctx.event_service.list_owned(claims.sub)


@router.get("/events/all", response_model=List[EventRecord])
def all_events(claims: TokenClaims = Depends(require_user), ctx: AppContext = Depends(get_context)):
    return ctx.event_service.list_all()


@router.get("/events/analytics", response_model=Analytics)
def event_analytics(
    claims: TokenClaims = Depends(require_user), ctx: AppContext = Depends(get_context)
):
    return ctx.analytics.summarize()


@router.get("/events", response_model=EventPage)
def list_events(
    page: int | None = None,
    limit: int | None = None,
    sort: str | None = None,
    order: str | None = None,
    search: str | None = None,
    status: str | None = None,
    claims: TokenClaims = Depends(require_user),
    ctx: AppContext = Depends(get_context),
):
    return ctx.query.search(
        page=page, limit=limit, sort=sort, order=order, search=search, status=status
    )


@router.get("/events/{event_id}", response_model=EventRecord)
def get_event(event_id: str, ctx: AppContext = Depends(get_context)):
    return ctx.event_service.get(event_id)


@router.put("/events/{event_id}", response_model=EventRecord)
def update_event(
    event_id: str,
    name: str | None = Form(None),
    date: datetime | None = Form(None),
    location: str | None = Form(None),
    status: EventStatus | None = Form(None),
    description: str | None = Form(None),
    image: UploadFile | None = File(None),
    claims: TokenClaims = Depends(require_user),
    ctx: AppContext = Depends(get_context),
):
    with ctx.images.staged(image) as image_ref:
        patch = EventPatch(
            name=name,
            date=date,
            location=location,
            status=status,
            description=description,
            image=image_ref,
        )
        return ctx.event_service.update(event_id, patch, claims.sub)


@router.delete("/events/{event_id}", response_model=MessageOut)
def delete_event(
    event_id: str,
    claims: TokenClaims = Depends(require_user),
    ctx: AppContext = Depends(get_context),
):
    ctx.event_service.delete(event_id, claims.sub)
    return MessageOut(message="Event deleted")


# ----------------------------------------------------------------- app


def create_app(context: AppContext | None = None) -> FastAPI:
    """Build the FastAPI app around `context` (the real one by default)."""

    if context is None:
        context = build_context(settings)
        if settings.jwt_secret == "dev-secret":
            logger.warning("JWT_SECRET is not set; using the development secret")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        context.images.ensure_dir()
        logger.info("event catalog backend ready")
        yield

    app = FastAPI(title="Event Catalog Backend", lifespan=lifespan)
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=context.settings.cors_origin_list(),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CatalogError)
    async def catalog_error(request: Request, exc: CatalogError):
        code = status_for(exc)
        if code == 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
            return JSONResponse(status_code=500, content={"message": "Internal server error"})
        return JSONResponse(status_code=code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_invalid(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"message": _describe(exc.errors())})

    @app.exception_handler(PydanticValidationError)
    async def model_invalid(request: Request, exc: PydanticValidationError):
        return JSONResponse(status_code=400, content={"message": _describe(exc.errors())})

    @app.exception_handler(Exception)
    async def unexpected(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})

    @app.get("/health")
    def health(ctx: AppContext = Depends(get_context)):
        try:
            ctx.events.ping()
            return {"ok": True}
        except Exception:
            logger.exception("DB health check failed")
            raise HTTPException(status_code=500, detail="DB health check failed")

    app.include_router(router)
    app.mount(
        URL_PREFIX,
        StaticFiles(directory=context.settings.upload_dir, check_dir=False),
        name="uploads",
    )
    return app


app = create_app()


def run() -> None:
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
