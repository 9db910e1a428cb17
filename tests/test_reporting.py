"""
Tests for the organisation report.

Covers:
- Period resolution (day/week/month, explicit range)
- Scope (individual, team, organisation) and its role checks
- Currency-normalised totals over approved conversions
- Degraded totals when a rate lookup fails
- Recent leads and conversions, newest first and scoped like the counts
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from salesdesk.errors import AuthorizationError, ValidationError
from salesdesk.models import Conversion, ConversionStatus, DailyVisit, Lead, UserRole, VisitType
from salesdesk.schemas.report import ReportPeriod, ReportScope
from salesdesk.services.currency import CurrencyNormalizer
from salesdesk.services.reporting import (
    RECENT_ACTIVITY_LIMIT,
    build_organization_report,
    resolve_period,
)

TODAY = date.today()
WINDOW = {"start": TODAY - timedelta(days=1), "end": TODAY + timedelta(days=1)}


@pytest.fixture
async def add_conversion(db_session, lead):
    async def _add(rep, revenue, currency, status=ConversionStatus.APPROVED, commission=None, on=TODAY):
        conversion = Conversion(
            lead_id=lead.id,
            rep_id=rep.id,
            revenue_amount=Decimal(revenue),
            currency=currency,
            status=status,
            conversion_date=on,
            commission_amount=Decimal(commission) if commission is not None else None,
            submitted_by=rep.id,
        )
        db_session.add(conversion)
        await db_session.commit()
        return conversion

    return _add


class TestResolvePeriod:
    def test_day(self):
        assert resolve_period(ReportPeriod.DAY, today=date(2026, 5, 20)) == (date(2026, 5, 20), date(2026, 5, 20))

    def test_week(self):
        assert resolve_period(ReportPeriod.WEEK, today=date(2026, 5, 20)) == (date(2026, 5, 13), date(2026, 5, 20))

    def test_month_to_date(self):
        assert resolve_period(ReportPeriod.MONTH, today=date(2026, 5, 20)) == (date(2026, 5, 1), date(2026, 5, 20))

    def test_explicit_range_wins(self):
        start, end = resolve_period(ReportPeriod.DAY, date(2026, 1, 1), date(2026, 1, 31))
        assert (start, end) == (date(2026, 1, 1), date(2026, 1, 31))

    def test_inverted_range_rejected(self):
        with pytest.raises(ValidationError):
            resolve_period(ReportPeriod.MONTH, date(2026, 2, 1), date(2026, 1, 1))


class TestOrganizationReport:
    async def test_totals_are_normalised(self, db_session, normalizer, users, add_conversion):
        rep = users["rep"]
        await add_conversion(rep, "100.00", "USD", commission="10.00")
        await add_conversion(rep, "200.00", "EUR", commission="20.00")
        await add_conversion(rep, "50.00", "GBP", status=ConversionStatus.PENDING)
        await add_conversion(rep, "999.00", "USD", status=ConversionStatus.REJECTED)

        report = await build_organization_report(db_session, normalizer, users["admin"], **WINDOW)

        assert report.currency == "USD"
        assert report.total_conversions == 2
        assert report.total_revenue == Decimal("320.00")
        assert report.total_commission == Decimal("32.00")
        assert report.conversions_by_status == {
            "pending": 1,
            "recommended": 0,
            "approved": 2,
            "rejected": 1,
        }
        assert report.degraded is False
        assert report.failed_conversions == 0

    async def test_failed_lookup_degrades_without_raising(self, db_session, normalizer, users, add_conversion):
        rep = users["rep"]
        await add_conversion(rep, "100.00", "USD", commission="10.00")
        await add_conversion(rep, "200.00", "EUR", commission="20.00")
        await add_conversion(rep, "300.00", "CHF", commission="30.00")

        report = await build_organization_report(db_session, normalizer, users["admin"], **WINDOW)

        # CHF has no rate: its raw amount is kept
        assert report.total_revenue == Decimal("620.00")
        assert report.total_commission == Decimal("62.00")
        assert report.degraded is True
        assert report.failed_conversions == 1

    async def test_counts_users_visits_and_leads(self, db_session, normalizer, users, lead):
        db_session.add(
            DailyVisit(
                rep_id=users["rep"].id,
                company_name="Acme Corp",
                visit_type=VisitType.MEETING,
                visit_date=TODAY,
            )
        )
        await db_session.commit()

        report = await build_organization_report(db_session, normalizer, users["director"], **WINDOW)
        assert report.total_users == 4
        assert report.total_visits == 1
        assert report.total_leads == 1
        assert report.total_revenue == Decimal("0.00")

    async def test_conversions_outside_period_excluded(self, db_session, normalizer, users, add_conversion):
        await add_conversion(users["rep"], "100.00", "USD", commission="10.00", on=TODAY - timedelta(days=40))
        report = await build_organization_report(db_session, normalizer, users["admin"], **WINDOW)
        assert report.total_conversions == 0

    async def test_explicit_target_currency(self, db_session, users, add_conversion):
        class EuroRates:
            async def rate(self, from_currency, to_currency, as_of=None):
                return {("USD", "EUR"): Decimal("0.5")}[(from_currency, to_currency)]

        await add_conversion(users["rep"], "100.00", "USD", commission="10.00")
        await add_conversion(users["rep"], "40.00", "EUR", commission="4.00")

        report = await build_organization_report(
            db_session,
            CurrencyNormalizer(EuroRates(), "USD"),
            users["admin"],
            target_currency="eur",
            **WINDOW,
        )
        assert report.currency == "EUR"
        assert report.total_revenue == Decimal("90.00")
        assert report.total_commission == Decimal("9.00")


class TestReportScope:
    async def test_team_scope(self, db_session, normalizer, users, make_user, add_conversion):
        outsider = await make_user(UserRole.REP)
        await add_conversion(users["rep"], "100.00", "USD", commission="10.00")
        await add_conversion(outsider, "500.00", "USD", commission="50.00")

        report = await build_organization_report(
            db_session, normalizer, users["manager"], scope=ReportScope.TEAM, **WINDOW
        )
        assert report.total_users == 2
        assert report.total_revenue == Decimal("100.00")

    async def test_individual_scope(self, db_session, normalizer, users, make_user, add_conversion):
        other = await make_user(UserRole.REP)
        await add_conversion(users["rep"], "100.00", "USD", commission="10.00")
        await add_conversion(other, "500.00", "USD", commission="50.00")

        report = await build_organization_report(
            db_session, normalizer, users["rep"], scope=ReportScope.INDIVIDUAL, **WINDOW
        )
        assert report.total_users == 1
        assert report.total_commission == Decimal("10.00")

    async def test_rep_cannot_view_other_rep(self, db_session, normalizer, users):
        with pytest.raises(AuthorizationError):
            await build_organization_report(
                db_session,
                normalizer,
                users["rep"],
                scope=ReportScope.INDIVIDUAL,
                subject_id=users["manager"].id,
            )

    async def test_rep_cannot_view_organisation(self, db_session, normalizer, users):
        with pytest.raises(AuthorizationError):
            await build_organization_report(db_session, normalizer, users["rep"])


class TestRecentActivity:
    async def _add_leads(self, db_session, creator, count):
        now = datetime.now(timezone.utc)
        leads = []
        for i in range(count):
            lead = Lead(
                company_name=f"Company {i}",
                contact_name=f"Contact {i}",
                created_by=creator.id,
                created_at=now - timedelta(minutes=count - i),
            )
            db_session.add(lead)
            leads.append(lead)
        await db_session.commit()
        return leads

    async def test_newest_leads_first_and_capped(self, db_session, normalizer, users):
        leads = await self._add_leads(db_session, users["rep"], RECENT_ACTIVITY_LIMIT + 2)

        report = await build_organization_report(db_session, normalizer, users["admin"], **WINDOW)

        assert [item.id for item in report.recent_leads] == [
            lead.id for lead in reversed(leads)
        ][:RECENT_ACTIVITY_LIMIT]
        assert report.recent_leads[0].company_name == f"Company {RECENT_ACTIVITY_LIMIT + 1}"
        assert report.recent_leads[0].creator_name == users["rep"].full_name
        assert report.total_leads == RECENT_ACTIVITY_LIMIT + 2

    async def test_recent_conversions_carry_lead_and_rep(self, db_session, normalizer, users, add_conversion):
        older = await add_conversion(users["rep"], "100.00", "USD", commission="10.00", on=TODAY - timedelta(days=1))
        newer = await add_conversion(users["rep"], "50.00", "EUR", status=ConversionStatus.PENDING)

        report = await build_organization_report(db_session, normalizer, users["admin"], **WINDOW)

        assert [item.id for item in report.recent_conversions] == [newer.id, older.id]
        first = report.recent_conversions[0]
        assert first.status == ConversionStatus.PENDING
        assert first.company_name == "Acme Corp"
        assert first.contact_name == "Jane Buyer"
        assert first.rep_name == users["rep"].full_name
        assert first.currency == "EUR"

    async def test_recent_activity_follows_scope(self, db_session, normalizer, users, make_user, add_conversion):
        other = await make_user(UserRole.REP)
        await self._add_leads(db_session, other, 2)
        await add_conversion(other, "500.00", "USD", commission="50.00")
        mine = await add_conversion(users["rep"], "100.00", "USD", commission="10.00")

        report = await build_organization_report(
            db_session, normalizer, users["rep"], scope=ReportScope.INDIVIDUAL, **WINDOW
        )

        assert [item.id for item in report.recent_conversions] == [mine.id]
        assert all(item.created_by == users["rep"].id for item in report.recent_leads)
