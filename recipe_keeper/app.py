import logging
from contextlib import asynccontextmanager
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import schemas
from .auth import Principal, SupabaseTokenVerifier, TokenVerifier, authenticate
from .config import Settings, load_settings
from .crud import RecipeStore
from .db import init_db, make_engine, make_session_factory
from .errors import RecipeAPIError

logger = logging.getLogger(__name__)


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_verifier(request: Request) -> TokenVerifier:
    return request.app.state.verifier


def get_current_principal(
    authorization: Optional[str] = Header(None),
    verifier: TokenVerifier = Depends(get_verifier),
) -> Principal:
    return authenticate(authorization, verifier)


def get_store(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> RecipeStore:
    return RecipeStore(db, principal)


router = APIRouter(prefix="/api/recipes", dependencies=[Depends(get_current_principal)])


@router.get("", response_model=List[schemas.Recipe])
def list_recipes(store: RecipeStore = Depends(get_store)):
    return store.list_recipes()


@router.get("/{recipe_id}", response_model=schemas.Recipe)
def get_recipe(recipe_id: str, store: RecipeStore = Depends(get_store)):
    return store.get_recipe(recipe_id)


@router.post("", response_model=schemas.Recipe, status_code=201)
def create_recipe(payload: Any = Body(None), store: RecipeStore = Depends(get_store)):
    # user_id and other server-owned keys in the body are ignored
    data = schemas.parse_create(payload)
    return store.create_recipe(data)


@router.put("/{recipe_id}", response_model=schemas.Recipe)
def update_recipe(recipe_id: str, payload: Any = Body(None), store: RecipeStore = Depends(get_store)):
    # ownership first, so an unowned id is 404 whatever the payload
    store.get_recipe(recipe_id)
    data = schemas.parse_update(payload)
    return store.update_recipe(recipe_id, data)


@router.delete("/{recipe_id}", response_model=schemas.DeleteResult)
def delete_recipe(recipe_id: str, store: RecipeStore = Depends(get_store)):
    store.delete_recipe(recipe_id)
    return {"message": "Recipe deleted successfully"}


def _envelope(status_code: int, message: str, details: Optional[str] = None) -> JSONResponse:
    error = {"message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RecipeAPIError)
    async def recipe_api_error(request: Request, exc: RecipeAPIError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
        )
        return _envelope(400, "Invalid request body", details)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            logger.debug("No route for %s %s", request.method, request.url.path)
            return _envelope(404, "Route not found")
        return _envelope(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _envelope(500, "Internal Server Error")


def create_app(settings: Optional[Settings] = None, verifier: Optional[TokenVerifier] = None) -> FastAPI:
    """Build the API; settings are loaded (and checked) now, not on first request."""
    if settings is None:
        settings = load_settings()

    engine = make_engine(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Initialize DB once at startup
        init_db(engine)
        yield
        engine.dispose()

    app = FastAPI(title="Recipe Keeper", lifespan=lifespan)
    app.state.settings = settings
    app.state.session_factory = make_session_factory(engine)
    app.state.verifier = verifier or SupabaseTokenVerifier(
        settings.supabase_url, settings.supabase_key, timeout=settings.auth_timeout
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    def health():
        return {"status": "ok", "message": "Server is running"}

    app.include_router(router)
    register_error_handlers(app)
    return app
