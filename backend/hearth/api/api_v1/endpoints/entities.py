"""
CRUD endpoints for household records

One router is built per entity type; all of them share the same tenancy,
encryption, concurrency and audit handling.
"""

import logging
from typing import Any, Dict, List, Optional, Type

from fastapi import APIRouter, Depends, Header, HTTPException, Path, Request, Response, status

from hearth.api.deps import TenantContext, require_member, require_viewer
from hearth.models import TENANT_MODELS
from hearth.models.base import MAX_ROW_ID, TenantModel
from hearth.schemas import WRITE_SCHEMAS, TenantUpdate, TenantWrite
from hearth.services.repository import TenantRepository

logger = logging.getLogger(__name__)


def etag_for(version: int) -> str:
    return f'"{version}"'


def parse_if_match(value: Optional[str]) -> Optional[int]:
    """
    Version from an If-Match header: "3", W/"3" or 3

    Returns:
        The version, or None when absent or "*"
    """
    if value is None:
        return None
    token = value.strip()
    if token in ("", "*"):
        return None
    if token.startswith("W/"):
        token = token[2:]
    token = token.strip('"')
    try:
        version = int(token)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid If-Match header: {value!r}",
        )
    if not 1 <= version <= MAX_ROW_ID:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid If-Match header: {value!r}",
        )
    return version


def _repository(request: Request, ctx: TenantContext, model: Type[TenantModel]) -> TenantRepository:
    state = request.app.state
    return TenantRepository(ctx.handle, model, state.gateway, state.guard)


def _audit(
    request: Request,
    ctx: TenantContext,
    action: str,
    entity_type: str,
    entity_id: int,
    metadata: Dict[str, Any],
) -> None:
    request.app.state.audit.record(
        household_id=ctx.household_id,
        actor_user_id=ctx.user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata=metadata,
        context=ctx.request,
    )


def build_entity_router(
    slug: str,
    model: Type[TenantModel],
    create_schema: Type[TenantWrite],
    update_schema: Type[TenantUpdate],
) -> APIRouter:
    """
    Router exposing list/get/create/update/delete for one entity type
    """
    router = APIRouter()
    action_prefix = slug.upper()

    @router.get("", name=f"list_{slug}")
    def list_entities(
        request: Request,
        include_deleted: bool = False,
        ctx: TenantContext = Depends(require_viewer),
    ) -> List[Dict[str, Any]]:
        return _repository(request, ctx, model).list(include_deleted=include_deleted)

    @router.get("/{entity_id}", name=f"get_{slug}")
    def get_entity(
        request: Request,
        response: Response,
        entity_id: int = Path(..., ge=1, le=MAX_ROW_ID),
        ctx: TenantContext = Depends(require_viewer),
    ) -> Dict[str, Any]:
        row = _repository(request, ctx, model).get(entity_id)
        response.headers["ETag"] = etag_for(row["version"])
        return row

    @router.post("", name=f"create_{slug}", status_code=status.HTTP_201_CREATED)
    def create_entity(
        payload: create_schema,
        request: Request,
        response: Response,
        ctx: TenantContext = Depends(require_member),
    ) -> Dict[str, Any]:
        values = payload.values()
        row = _repository(request, ctx, model).create(values)
        _audit(
            request, ctx, f"{action_prefix}_CREATE", slug, row["id"],
            {"fields": sorted(values), "version": row["version"]},
        )
        response.headers["ETag"] = etag_for(row["version"])
        return row

    @router.patch("/{entity_id}", name=f"update_{slug}")
    def update_entity(
        payload: update_schema,
        request: Request,
        response: Response,
        entity_id: int = Path(..., ge=1, le=MAX_ROW_ID),
        if_match: Optional[str] = Header(None),
        ctx: TenantContext = Depends(require_member),
    ) -> Dict[str, Any]:
        expected_version = parse_if_match(if_match)
        if expected_version is None:
            expected_version = payload.expected_version

        values = payload.values()
        row = _repository(request, ctx, model).update(entity_id, values, expected_version)
        _audit(
            request, ctx, f"{action_prefix}_UPDATE", slug, entity_id,
            {"fields": sorted(values), "version": row["version"]},
        )
        response.headers["ETag"] = etag_for(row["version"])
        return row

    @router.delete("/{entity_id}", name=f"delete_{slug}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_entity(
        request: Request,
        entity_id: int = Path(..., ge=1, le=MAX_ROW_ID),
        ctx: TenantContext = Depends(require_member),
    ) -> Response:
        _repository(request, ctx, model).delete(entity_id)
        _audit(request, ctx, f"{action_prefix}_DELETE", slug, entity_id, {})
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router


router = APIRouter()

for _slug, _model in TENANT_MODELS.items():
    _create_schema, _update_schema = WRITE_SCHEMAS[_slug]
    router.include_router(
        build_entity_router(_slug, _model, _create_schema, _update_schema),
        prefix=f"/{_slug}",
    )
