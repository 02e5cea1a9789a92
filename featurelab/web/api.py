"""FastAPI app: admin settings page and experiments JSON API."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.security import (
    HTTPAuthorizationCredentials,
    HTTPBasic,
    HTTPBasicCredentials,
    HTTPBearer,
)
from jose import JWTError, jwt
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from .. import __version__
from ..bootstrap import Runtime
from ..experiments.manager import Feature, FeatureState
from ..utils.crypto import hash_password, verify_password
from ..utils.logging import get_logger

logger = get_logger(__name__)

# ── Pydantic request/response models ──────────────────────────────────────────


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class FeatureStateUpdate(BaseModel):
    # Name ("active") or code (1)
    state: int | str


# ── Security ──────────────────────────────────────────────────────────────────

bearer = HTTPBearer()
basic = HTTPBasic()

JWT_ALGORITHM = "HS256"


def _feature_payload(runtime: Runtime, feature: Feature) -> dict[str, Any]:
    data = feature.to_dict()
    data["active"] = runtime.manager.is_feature_active(feature.name)
    data["option_key"] = runtime.manager.get_feature_option_key(feature.name)
    return data


def create_app(runtime: Runtime) -> FastAPI:
    """Create the FastAPI application around an already-built runtime."""
    settings = runtime.settings

    app = FastAPI(
        title=f"{settings.app.name} Admin",
        description="Experiment toggles and admin settings",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.state.runtime = runtime

    # User store
    admin_username = settings.web.admin_username
    app.state.users = {
        admin_username: hash_password(settings.admin_password),
    }

    JWT_SECRET = settings.jwt_secret
    JWT_EXPIRY_HOURS = settings.web.jwt_expiry_hours

    def create_token(user_id: str) -> tuple[str, int]:
        expires = datetime.now(timezone.utc) + timedelta(hours=JWT_EXPIRY_HOURS)
        payload = {"sub": user_id, "exp": expires, "iat": datetime.now(timezone.utc)}
        token = jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)
        return token, JWT_EXPIRY_HOURS * 3600

    def check_credentials(username: str, password: str) -> bool:
        stored_hash = app.state.users.get(username)
        return bool(stored_hash) and verify_password(password, stored_hash)

    async def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(bearer),
    ) -> str:
        try:
            payload = jwt.decode(credentials.credentials, JWT_SECRET, algorithms=[JWT_ALGORITHM])
            user_id = payload.get("sub")
            if not user_id:
                raise HTTPException(status_code=401, detail="Invalid token")
            return user_id
        except JWTError:
            raise HTTPException(status_code=401, detail="Invalid token")

    # Sync handlers below run in the threadpool: argon2 and option writes block
    def get_admin_user(credentials: HTTPBasicCredentials = Depends(basic)) -> str:
        known = secrets.compare_digest(credentials.username.encode(), admin_username.encode())
        if not known or not check_credentials(credentials.username, credentials.password):
            raise HTTPException(
                status_code=401,
                detail="Invalid credentials",
                headers={"WWW-Authenticate": "Basic"},
            )
        return credentials.username

    # ── API Router (/api prefix) ──────────────────────────────────────────

    api = APIRouter(prefix="/api")

    @api.get("/health")
    async def health():
        return {"status": "ok", "experiments": len(runtime.manager.get_features())}

    @api.post("/auth/login", response_model=LoginResponse)
    def login(request: LoginRequest):
        if not check_credentials(request.username, request.password):
            logger.warning("Failed admin login", username=request.username)
            raise HTTPException(status_code=401, detail="Invalid credentials")
        token, expires_in = create_token(request.username)
        return LoginResponse(access_token=token, expires_in=expires_in)

    @api.get("/experiments")
    async def list_experiments(user_id: str = Depends(get_current_user)):
        """List all experiments with their resolved activation."""
        return {
            "experiments": [
                _feature_payload(runtime, feature)
                for feature in runtime.manager.get_features().values()
            ]
        }

    @api.get("/experiments/{feature_name}")
    async def get_experiment(feature_name: str, user_id: str = Depends(get_current_user)):
        feature = runtime.manager.get_features(feature_name)
        if feature is None:
            raise HTTPException(404, f"Unknown experiment: {feature_name}")
        return _feature_payload(runtime, feature)

    @api.put("/experiments/{feature_name}")
    def update_experiment(
        feature_name: str,
        body: FeatureStateUpdate,
        user_id: str = Depends(get_current_user),
    ):
        """Persist a state override. Body: { "state": "default"|"active"|"inactive" }."""
        if runtime.manager.get_features(feature_name) is None:
            raise HTTPException(404, f"Unknown experiment: {feature_name}")
        try:
            state = FeatureState.coerce(body.state)
        except ValueError as e:
            raise HTTPException(422, str(e))
        feature = runtime.manager.save_feature_state(feature_name, state)
        logger.info("Experiment updated via API", feature=feature_name, state=state.label, user=user_id)
        return _feature_payload(runtime, feature)

    app.include_router(api)

    # ── Admin settings page ───────────────────────────────────────────────

    if settings.web.admin_enabled:
        admin = APIRouter(prefix="/admin")

        @admin.get("/settings", response_class=HTMLResponse)
        def settings_page(
            tab: str | None = Query(default=None),
            user_id: str = Depends(get_admin_user),
        ):
            page = runtime.build_settings_page()
            try:
                return HTMLResponse(page.render(tab, action="/admin/settings"))
            except KeyError:
                raise HTTPException(404, f"Unknown settings tab: {tab}")

        @admin.post("/settings")
        async def save_settings(request: Request, user_id: str = Depends(get_admin_user)):
            form = await request.form()
            page = runtime.build_settings_page()
            saved = await run_in_threadpool(page.save, form)
            logger.info("Admin settings submitted", user=user_id, saved=len(saved))
            tab = form.get("tab")
            target = f"/admin/settings?tab={tab}" if tab in page.get_tabs() else "/admin/settings"
            return RedirectResponse(target, status_code=303)

        app.include_router(admin)

    return app
