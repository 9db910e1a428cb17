"""Goal and visit API endpoints."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.auth.dependencies import get_current_user
from salesdesk.auth.roles import is_manager_or_above
from salesdesk.db import get_db
from salesdesk.errors import AuthorizationError
from salesdesk.models import User
from salesdesk.schemas.activity import (
    GoalCreate,
    GoalResponse,
    VisitCreate,
    VisitLogResponse,
    VisitResponse,
)
from salesdesk.services import activity
from salesdesk.services.notifications import Notifier, get_notifier
from salesdesk.utils.audit import get_client_ip

router = APIRouter(tags=["Activity"])


@router.get("/goals", response_model=List[GoalResponse])
async def list_goals(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    user_id: Optional[int] = Query(None),
    active_on: Optional[date] = Query(None),
):
    """List goals for the caller, or for another user (managers only)."""
    user_id = user_id or current_user.id
    if user_id != current_user.id and not is_manager_or_above(current_user):
        raise AuthorizationError("Reps can only view their own goals")
    goals = await activity.list_goals(db, user_id, active_on=active_on)
    return [GoalResponse.model_validate(goal) for goal in goals]


@router.post("/goals", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
async def create_goal(
    data: GoalCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    goal = await activity.create_goal(
        db,
        current_user,
        goal_type=data.goal_type,
        target_value=data.target_value,
        period_start=data.period_start,
        period_end=data.period_end,
        user_id=data.user_id,
        currency=data.currency,
        description=data.description,
        ip_address=get_client_ip(request),
    )
    return GoalResponse.model_validate(goal)


@router.post("/visits", response_model=VisitLogResponse, status_code=status.HTTP_201_CREATED)
async def log_visit(
    data: VisitCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    """Log a visit; completed visits count towards the visits goal."""
    result = await activity.record_visit(
        db,
        current_user,
        notifier=notifier,
        ip_address=get_client_ip(request),
        **data.model_dump(),
    )
    return VisitLogResponse(
        visit=VisitResponse.model_validate(result.visit),
        goals_incremented=result.goals_incremented,
        calendar_url=result.calendar_url,
        warnings=result.warnings,
    )
