"""Admin reporting endpoints: weekly statistics and data export."""

import hmac
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from relay_api.config import settings
from relay_api.database import get_db
from relay_api.services.report_service import build_backup, build_weekly_report, default_report_range, local_today

router = APIRouter(prefix="/api")


def _require_admin_token(provided: Optional[str]) -> None:
    expected = settings.admin_token
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="ADMIN_TOKEN not configured",
        )
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")


def backup_filename(client_id: str, now: datetime) -> str:
    return f"{client_id}-backup-{local_today(now).isoformat()}.json"


@router.get("/reports/weekly")
def weekly_report(
    client_id: str = Query(...),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
    db: Session = Depends(get_db),
):
    _require_admin_token(x_admin_token)
    default_start, default_end = default_report_range()
    start_date = start_date or default_start
    end_date = end_date or default_end
    if start_date > end_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start_date must not be after end_date")
    return build_weekly_report(db, client_id, start_date, end_date)


@router.get("/backup")
def backup(
    client_id: str = Query(...),
    days: int = Query(default=30, ge=1, le=365),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
    db: Session = Depends(get_db),
):
    _require_admin_token(x_admin_token)
    now = datetime.now(timezone.utc)
    export = build_backup(db, client_id, days, now=now)
    return JSONResponse(
        export,
        headers={"Content-Disposition": f'attachment; filename="{backup_filename(client_id, now)}"'},
    )
