"""
Household-level read endpoints: activity, audit feed and export
"""

from fastapi import APIRouter, Depends, Query, Request
from typing import Optional
import logging

from hearth.api.deps import TenantContext, require_admin, require_viewer
from hearth.services.export import build_export

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/activity")
def household_activity(
    request: Request,
    days: Optional[int] = Query(None, ge=1, le=365),
    ctx: TenantContext = Depends(require_viewer),
):
    """
    Per-module, per-member action counts over a trailing window
    """
    state = request.app.state
    window = days or state.settings.ACTIVITY_WINDOW_DAYS
    return state.audit.activity_heatmap(
        ctx.household_id,
        days=window,
        name_lookup=state.directory.user_names,
    )


@router.get("/audit")
def household_audit(
    request: Request,
    limit: int = Query(100, ge=1, le=1000),
    ctx: TenantContext = Depends(require_admin),
):
    """
    Latest audit entries, newest first
    """
    entries = request.app.state.audit.entries(ctx.household_id, limit=limit)
    return {"household_id": ctx.household_id, "count": len(entries), "entries": entries}


@router.get("/export")
def household_export(
    request: Request,
    ctx: TenantContext = Depends(require_admin),
):
    """
    Full decrypted export of the household
    """
    state = request.app.state
    export = build_export(ctx.handle, state.directory, state.gateway)
    state.audit.record(
        household_id=ctx.household_id,
        actor_user_id=ctx.user_id,
        action="HOUSEHOLD_EXPORT",
        entity_type="households",
        entity_id=ctx.household_id,
        metadata={"tables": sorted(export["data"])},
        context=ctx.request,
    )
    return export
