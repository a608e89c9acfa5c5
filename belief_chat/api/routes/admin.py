"""
Admin API routes.

Study data export, guarded by the admin bearer token.
"""

from fastapi import APIRouter
from fastapi.responses import Response

from belief_chat.api.dependencies import AdminDep, ExportServiceDep

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[AdminDep])


@router.get("/export.json")
async def export_json(service: ExportServiceDep):
    """All participant and conversation documents."""
    return Response(
        content=service.export("json"),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="belief_chat_export.json"'},
    )


@router.get("/export.csv")
async def export_csv(service: ExportServiceDep):
    """One row per stored message, with survey context."""
    return Response(
        content=service.export("csv"),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="belief_chat_export.csv"'},
    )
