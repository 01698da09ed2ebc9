from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app import config
from app.business_logic import FlagService
from app.database.init_db import get_session
from app.dependencies import Principal, require_supervisor, get_flag_service
from app.models.enums import FlagSeverity, FlagStatus
from app.models.session_flag import SessionFlag
from app.schemas import FlagList, FlagListItem, FlagRead, FlagSessionContext, ErrorResponse

router = APIRouter(responses={
    403: {"model": ErrorResponse, "description": "Supervisor access required"},
})


def build_flag_item(flag: SessionFlag) -> FlagListItem:
    session = flag.session
    context = FlagSessionContext(
        id=session.id,
        modality=session.modality,
        started_at=session.started_at,
        user_id=session.user_id,
        user_display_name=session.user.display_name if session.user else None,
        scenario_id=session.scenario_id,
        scenario_title=session.scenario.title if session.scenario else None,
    )
    return FlagListItem(**FlagRead.model_validate(flag).model_dump(), session=context)


@router.get("", response_model=FlagList)
async def list_flags(
    status: Optional[FlagStatus] = Query(None, description="Filter by review status"),
    severity: Optional[FlagSeverity] = Query(None, description="Filter by severity"),
    session_id: Optional[str] = Query(None, alias="sessionId", description="Filter by session"),
    principal: Principal = Depends(require_supervisor),
    flags: FlagService = Depends(get_flag_service),
    db: AsyncSession = Depends(get_session),
):
    """
    List flags for supervisor review.

    Critical flags come first, then newest first. At most
    ``FLAG_LIST_LIMIT`` rows are returned.
    """
    results = await flags.list_flags(
        db, status=status, severity=severity, session_id=session_id, limit=config.FLAG_LIST_LIMIT
    )
    items = [build_flag_item(flag) for flag in results]
    return FlagList(results=items, total=len(items))
