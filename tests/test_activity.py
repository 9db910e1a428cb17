"""
Tests for goals and visit logging.
"""

from datetime import date, time, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from salesdesk.errors import AuthorizationError, ValidationError
from salesdesk.models import AuditAction, AuditLog, Goal, Lead, UserRole, VisitType
from salesdesk.services.activity import create_goal, increment_goal, list_goals, record_visit
from salesdesk.services.notifications import VISIT_REMINDER_FUNCTION

TODAY = date.today()


@pytest.fixture
async def visits_goal(db_session, users):
    return await create_goal(
        db_session,
        users["rep"],
        goal_type="visits",
        target_value=Decimal("20"),
        period_start=TODAY - timedelta(days=3),
        period_end=TODAY + timedelta(days=3),
    )


async def _current_value(db_session, goal_id):
    goal = await db_session.get(Goal, goal_id, populate_existing=True)
    return goal.current_value


class TestIncrementGoal:
    async def test_increments_goal_containing_date(self, db_session, users, visits_goal):
        updated = await increment_goal(db_session, users["rep"].id, "visits", TODAY)
        await db_session.commit()
        assert updated == 1
        assert await _current_value(db_session, visits_goal.id) == Decimal("1")

    async def test_ignores_goal_outside_period(self, db_session, users, visits_goal):
        updated = await increment_goal(db_session, users["rep"].id, "visits", TODAY + timedelta(days=30))
        assert updated == 0

    async def test_ignores_other_goal_types(self, db_session, users, visits_goal):
        assert await increment_goal(db_session, users["rep"].id, "leads", TODAY) == 0

    async def test_custom_amount(self, db_session, users, visits_goal):
        await increment_goal(db_session, users["rep"].id, "visits", TODAY, amount=Decimal("2.5"))
        await db_session.commit()
        assert await _current_value(db_session, visits_goal.id) == Decimal("2.5")

    @pytest.mark.parametrize("amount", ["0", "-1"])
    async def test_never_decrements(self, db_session, users, visits_goal, amount):
        with pytest.raises(ValidationError):
            await increment_goal(db_session, users["rep"].id, "visits", TODAY, amount=Decimal(amount))


class TestCreateGoal:
    async def test_create_for_self(self, db_session, users, visits_goal):
        assert visits_goal.user_id == users["rep"].id
        assert visits_goal.current_value == Decimal("0")
        assert [goal.id for goal in await list_goals(db_session, users["rep"].id, active_on=TODAY)] == [visits_goal.id]

    async def test_manager_sets_goal_for_rep(self, db_session, users):
        goal = await create_goal(
            db_session,
            users["manager"],
            user_id=users["rep"].id,
            goal_type="Revenue",
            target_value=Decimal("50000"),
            period_start=TODAY,
            period_end=TODAY,
            currency="eur",
        )
        assert goal.goal_type == "revenue"
        assert goal.currency == "EUR"

    async def test_rep_cannot_set_goal_for_others(self, db_session, users):
        with pytest.raises(AuthorizationError):
            await create_goal(
                db_session,
                users["rep"],
                user_id=users["manager"].id,
                goal_type="visits",
                target_value=Decimal("5"),
                period_start=TODAY,
                period_end=TODAY,
            )

    async def test_inverted_period_rejected(self, db_session, users):
        with pytest.raises(ValidationError):
            await create_goal(
                db_session,
                users["rep"],
                goal_type="visits",
                target_value=Decimal("5"),
                period_start=TODAY,
                period_end=TODAY - timedelta(days=1),
            )


class TestRecordVisit:
    async def test_completed_visit_increments_goal(self, db_session, users, visits_goal):
        result = await record_visit(
            db_session,
            users["rep"],
            company_name="Acme Corp",
            visit_type=VisitType.MEETING,
            visit_date=TODAY,
        )
        assert result.visit.id is not None
        assert result.goals_incremented == 1
        assert await _current_value(db_session, visits_goal.id) == Decimal("1")

        logged = await db_session.execute(
            select(AuditLog).where(AuditLog.action == AuditAction.LOG_VISIT)
        )
        assert logged.scalar_one().target_id == result.visit.id

    async def test_scheduled_visit_does_not_increment(self, db_session, users, visits_goal):
        result = await record_visit(
            db_session,
            users["rep"],
            company_name="Acme Corp",
            visit_type=VisitType.PRESENTATION,
            visit_date=TODAY,
            status="scheduled",
        )
        assert result.goals_incremented == 0
        assert await _current_value(db_session, visits_goal.id) == Decimal("0")

    async def test_generated_lead_is_created(self, db_session, users):
        result = await record_visit(
            db_session,
            users["rep"],
            company_name="Globex",
            contact_person="Hank Scorpio",
            visit_type=VisitType.COLD_CALL,
            lead_generated=True,
        )
        assert result.lead is not None
        assert result.visit.lead_id == result.lead.id
        lead = await db_session.get(Lead, result.lead.id)
        assert lead.created_by == users["rep"].id
        assert lead.source == "visit"

    async def test_reminder_and_calendar_for_scheduled_visit(self, db_session, users, recording_notifier):
        result = await record_visit(
            db_session,
            users["rep"],
            company_name="Initech",
            contact_person="Bill",
            contact_email="bill@initech.test",
            visit_type=VisitType.FOLLOW_UP,
            visit_date=date(2026, 6, 1),
            visit_time=time(14, 30),
            duration_minutes=45,
            status="scheduled",
            send_reminder=True,
            add_to_calendar=True,
            notifier=recording_notifier,
        )
        assert result.warnings == []
        function_name, payload = recording_notifier.sent[0]
        assert function_name == VISIT_REMINDER_FUNCTION
        assert payload["to"] == "bill@initech.test"
        assert "dates=20260601T143000%2F20260601T151500" in result.calendar_url

    async def test_reminder_failure_keeps_visit(self, db_session, users, failing_notifier):
        result = await record_visit(
            db_session,
            users["rep"],
            company_name="Initech",
            contact_email="bill@initech.test",
            visit_type=VisitType.FOLLOW_UP,
            status="scheduled",
            send_reminder=True,
            notifier=failing_notifier,
        )
        assert result.visit.id is not None
        assert len(result.warnings) == 1

    async def test_invalid_status_rejected(self, db_session, users):
        with pytest.raises(ValidationError):
            await record_visit(
                db_session,
                users["rep"],
                company_name="Acme Corp",
                visit_type=VisitType.MEETING,
                status="postponed",
            )

    async def test_other_users_goal_untouched(self, db_session, users, make_user, visits_goal):
        other = await make_user(UserRole.REP)
        await record_visit(db_session, other, company_name="Acme Corp", visit_type=VisitType.MEETING)
        assert await _current_value(db_session, visits_goal.id) == Decimal("0")
