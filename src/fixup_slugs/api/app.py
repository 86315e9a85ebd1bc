"""FastAPI application for the fixup-slugs JSON API."""

import secrets
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Path, Query, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from .. import __version__
from ..core.model import MAX_RECORD_ID, UpdateResult
from ..sitemap import build_sitemap

STATUS_BY_ERROR = {
    "validation": 400,
    "not_found": 404,
    "conflict": 409,
    "exhausted": 409,
    "lookup_failed": 503,
}


RecordIdPath = Path(..., ge=1, le=MAX_RECORD_ID, description="Record id")


class CreateRecord(BaseModel):
    display_name: str
    slug: str | None = None


class Rename(BaseModel):
    display_name: str


class SetSlug(BaseModel):
    slug: str
    is_manual: bool = True


class ResetSlug(BaseModel):
    display_name: str | None = None


def _record_or_raise(result: UpdateResult) -> dict[str, Any]:
    if not result.ok:
        raise HTTPException(
            status_code=STATUS_BY_ERROR.get(result.error or "", 400),
            detail={"error": result.error, "reason": result.reason},
        )
    return result.record.to_dict() if result.record else {}


def create_app(runtime: Any, token: str | None = None, enable_cors: bool = False) -> Any:
    """
    Create FastAPI application with runtime injected.

    Args:
        runtime: Runtime instance with store and config
        token: Bearer token for authentication (None to disable auth)
        enable_cors: Enable CORS middleware

    Returns:
        FastAPI application instance
    """
    app = FastAPI(
        title="FixUp Slugs API",
        description="Slug generation, uniqueness and lookup for marketplace records",
        version=__version__,
        docs_url="/docs" if token is None else None,
        redoc_url="/redoc" if token is None else None,
    )

    # Add CORS middleware if enabled
    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Security setup
    if token:
        security_scheme = HTTPBearer(auto_error=False)

        async def verify_token(
            credentials: HTTPAuthorizationCredentials | None = Security(security_scheme),  # noqa: B008
        ) -> None:
            """Verify bearer token."""
            if credentials is None or credentials.credentials != token:
                raise HTTPException(status_code=401, detail="Invalid or missing token")
    else:

        async def verify_token() -> None:
            """No-op when auth is disabled."""
            return None

    @app.get("/health")  # type: ignore[misc]
    async def health(auth: None = Depends(verify_token)) -> dict[str, Any]:
        """Health check endpoint."""
        return {"status": "ok", "version": __version__}

    @app.get("/slugs/preview")  # type: ignore[misc]
    async def preview(
        name: str = Query(..., description="Display name"),
        auth: None = Depends(verify_token),
    ) -> dict[str, Any]:
        """Slug a name would get, without touching the store."""
        return {"slug": runtime.manager().preview(name)}

    @app.get("/slugs/validate")  # type: ignore[misc]
    async def validate(
        slug: str = Query(..., description="Slug to check"),
        auth: None = Depends(verify_token),
    ) -> dict[str, Any]:
        validation = runtime.manager().validate(slug)
        return {"valid": validation.valid, "reason": validation.reason}

    @app.get("/{kind}/slugs/generate")  # type: ignore[misc]
    async def generate(
        kind: str,
        name: str = Query(..., description="Display name"),
        exclude_id: int | None = Query(None, description="Record being edited"),
        auth: None = Depends(verify_token),
    ) -> dict[str, Any]:
        """Unique slug for a name; `unique` is false for an unsaved preview."""
        proposal = await runtime.manager(kind).generate(name, exclude_id=exclude_id)
        return {"slug": proposal.slug, "unique": proposal.unique, "error": proposal.error}

    @app.get("/{kind}/resolve/{slug}")  # type: ignore[misc]
    async def resolve(
        kind: str, slug: str, auth: None = Depends(verify_token)
    ) -> Any:
        """Record for a slug, numeric id or legacy id-name path."""
        found = await runtime.manager(kind).find_by_slug(slug)
        if found.found:
            return {"record": found.record.to_dict(), "redirect_to": found.redirect_to}
        if found.error == "lookup_failed":
            raise HTTPException(status_code=503, detail="Record lookup failed")
        return JSONResponse(
            status_code=404,
            content={
                "detail": f"No {kind} for '{slug}'",
                "error": found.error,
                "redirect": f"/{kind}s",
            },
        )

    @app.post("/{kind}/records", status_code=201)  # type: ignore[misc]
    async def create_record(
        kind: str, body: CreateRecord, auth: None = Depends(verify_token)
    ) -> dict[str, Any]:
        result = await runtime.manager(kind).create(body.display_name, slug=body.slug)
        return _record_or_raise(result)

    @app.patch("/{kind}/records/{record_id}")  # type: ignore[misc]
    async def rename_record(
        kind: str, body: Rename, record_id: int = RecordIdPath, auth: None = Depends(verify_token)
    ) -> dict[str, Any]:
        """Rename; an auto slug follows the new name, a manual one stays."""
        result = await runtime.manager(kind).rename(record_id, body.display_name)
        return _record_or_raise(result)

    @app.put("/{kind}/records/{record_id}/slug")  # type: ignore[misc]
    async def set_slug(
        kind: str, body: SetSlug, record_id: int = RecordIdPath, auth: None = Depends(verify_token)
    ) -> dict[str, Any]:
        result = await runtime.manager(kind).update_slug(
            record_id, body.slug, is_manual=body.is_manual
        )
        return _record_or_raise(result)

    @app.post("/{kind}/records/{record_id}/slug/reset")  # type: ignore[misc]
    async def reset_slug(
        kind: str,
        record_id: int = RecordIdPath,
        body: ResetSlug | None = None,
        auth: None = Depends(verify_token),
    ) -> dict[str, Any]:
        display_name = body.display_name if body else None
        result = await runtime.manager(kind).reset_slug_to_auto(record_id, display_name)
        return _record_or_raise(result)

    @app.get("/sitemap.xml")  # type: ignore[misc]
    async def sitemap(auth: None = Depends(verify_token)) -> Response:
        xml = build_sitemap(await runtime.records_by_kind(), runtime.config.sitemap)
        return Response(content=xml, media_type="application/xml")

    return app


def generate_token() -> str:
    """Generate a random bearer token."""
    return secrets.token_urlsafe(32)
