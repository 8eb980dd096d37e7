from time import perf_counter

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hostel_app import __version__
from hostel_app.api.deps import get_db

router = APIRouter(tags=["Health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    t0 = perf_counter()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable", "version": __version__, "checks": {"db": type(e).__name__}},
        )
    return {
        "status": "ok",
        "version": __version__,
        "checks": {"db_select_1_ms": int((perf_counter() - t0) * 1000)},
    }
