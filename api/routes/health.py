from fastapi import APIRouter

from app.db import check_db_connection

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check():
    """Liveness probe; also reports whether the database answers."""
    return {"status": "ok", "database": check_db_connection()}
