"""
Health API Routes
"""
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from pressroom.database import database_health

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> JSONResponse:
    """Application and database health"""
    db = database_health(request.app.state.db_engine)
    ok = bool(db.get("ok"))
    return JSONResponse(
        status_code=status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if ok else "degraded",
            "database": db,
            "templates": request.app.state.workflow_engine.registry.names(),
        },
    )
