"""
Work session tests.

Verifies:
- elapsed time excludes pauses
- stopping unpaid time creates exactly one investment of hours * rate
- editing a session keeps its investment in line (create, update, delete)
- ownership rules for partners and admins
"""

from datetime import datetime

import pytest

from bizledger.extensions import db
from bizledger.models import Investment, TimeSession
from bizledger.services import investment_service, timekeeping_service
from bizledger.services.auth_service import AuthorizationError
from bizledger.services.investment_service import InvestmentError
from bizledger.services.timekeeping_service import TimekeepingError
from bizledger.validation import ValidationError


def _worked_session(user, clock, *, hours=3, rate=20, is_paid=False):
    session = timekeeping_service.start_session(user=user, hourly_rate=rate)
    clock.advance(hours=hours)
    return timekeeping_service.stop_session(session_id=session.id, user=user, is_paid=is_paid)


def _investments_for(session_id):
    return db.session.query(Investment).filter_by(session_id=session_id).all()


class TestSessionLifecycle:

    def test_start_creates_running_session(self, partner, clock):
        session = timekeeping_service.start_session(user=partner, hourly_rate="25")

        assert session.is_completed is False
        assert session.hourly_rate == pytest.approx(25.0)
        assert session.start_time == datetime(2026, 3, 2, 9, 0, 0)
        assert timekeeping_service.get_current_session(partner.id).id == session.id

    def test_only_one_running_session_per_partner(self, partner, clock):
        timekeeping_service.start_session(user=partner, hourly_rate=25)
        with pytest.raises(TimekeepingError):
            timekeeping_service.start_session(user=partner, hourly_rate=25)

    def test_hourly_rate_must_be_positive(self, partner, clock):
        with pytest.raises(ValidationError):
            timekeeping_service.start_session(user=partner, hourly_rate=0)

    def test_pauses_are_excluded_from_elapsed_time(self, partner, clock):
        session = timekeeping_service.start_session(user=partner, hourly_rate=20)
        clock.advance(hours=1)
        timekeeping_service.pause_session(session_id=session.id, user=partner)
        clock.advance(minutes=30)

        # While paused, the ongoing pause does not count
        assert timekeeping_service.elapsed_seconds(session) == 3600

        timekeeping_service.resume_session(session_id=session.id, user=partner)
        clock.advance(hours=2)
        stopped = timekeeping_service.stop_session(session_id=session.id, user=partner, is_paid=False)

        assert stopped.paused_ms == 30 * 60 * 1000
        assert timekeeping_service.session_hours(stopped) == pytest.approx(3.0)
        assert timekeeping_service.session_value(stopped) == pytest.approx(60.0)

    def test_stop_while_paused_closes_the_pause(self, partner, clock):
        session = timekeeping_service.start_session(user=partner, hourly_rate=10)
        clock.advance(hours=1)
        timekeeping_service.pause_session(session_id=session.id, user=partner)
        clock.advance(hours=1)
        stopped = timekeeping_service.stop_session(session_id=session.id, user=partner, is_paid=True)

        assert stopped.paused_at is None
        assert timekeeping_service.session_hours(stopped) == pytest.approx(1.0)

    def test_pause_twice_rejected(self, partner, clock):
        session = timekeeping_service.start_session(user=partner, hourly_rate=10)
        timekeeping_service.pause_session(session_id=session.id, user=partner)
        with pytest.raises(TimekeepingError):
            timekeeping_service.pause_session(session_id=session.id, user=partner)

    def test_resume_without_pause_rejected(self, partner, clock):
        session = timekeeping_service.start_session(user=partner, hourly_rate=10)
        with pytest.raises(TimekeepingError):
            timekeeping_service.resume_session(session_id=session.id, user=partner)

    def test_stop_twice_rejected(self, partner, clock):
        session = _worked_session(partner, clock)
        with pytest.raises(TimekeepingError):
            timekeeping_service.stop_session(session_id=session.id, user=partner, is_paid=True)

    def test_stop_requires_paid_flag(self, partner, clock):
        session = timekeeping_service.start_session(user=partner, hourly_rate=10)
        with pytest.raises(ValidationError):
            timekeeping_service.stop_session(session_id=session.id, user=partner, is_paid=None)

    def test_other_partner_cannot_stop_session(self, partner, other_partner, clock):
        session = timekeeping_service.start_session(user=partner, hourly_rate=10)
        with pytest.raises(AuthorizationError):
            timekeeping_service.stop_session(session_id=session.id, user=other_partner, is_paid=True)

    def test_missing_session(self, partner, clock):
        with pytest.raises(TimekeepingError, match="not found") as excinfo:
            timekeeping_service.pause_session(session_id=404, user=partner)
        assert excinfo.value.status_code == 404

    def test_invalid_transition_is_a_bad_request(self, partner, clock):
        session = timekeeping_service.start_session(user=partner, hourly_rate=10)
        with pytest.raises(TimekeepingError) as excinfo:
            timekeeping_service.resume_session(session_id=session.id, user=partner)
        assert excinfo.value.status_code == 400


class TestInvestedTime:

    def test_unpaid_stop_creates_one_investment(self, partner, clock):
        session = _worked_session(partner, clock, hours=3, rate=20)

        investments = _investments_for(session.id)
        assert len(investments) == 1
        investment = investments[0]
        assert investment.amount == pytest.approx(60.0)
        assert investment.description == "Investimento de Tempo (3.00h)"
        assert investment.is_time_investment is True
        assert investment.user_id == partner.id
        assert investment.user_name == "ana"

    def test_paid_stop_creates_no_investment(self, partner, clock):
        session = _worked_session(partner, clock, is_paid=True)
        assert _investments_for(session.id) == []

    def test_marking_paid_removes_investment(self, partner, clock):
        session = _worked_session(partner, clock)
        timekeeping_service.edit_session(session_id=session.id, actor=partner, fields={"is_paid": True})
        assert _investments_for(session.id) == []

    def test_marking_unpaid_creates_investment(self, partner, clock):
        session = _worked_session(partner, clock, hours=2, rate=15, is_paid=True)
        timekeeping_service.edit_session(session_id=session.id, actor=partner, fields={"is_paid": False})

        investments = _investments_for(session.id)
        assert len(investments) == 1
        assert investments[0].amount == pytest.approx(30.0)

    def test_editing_rate_and_times_updates_investment_in_place(self, partner, clock):
        session = _worked_session(partner, clock, hours=3, rate=20)
        investment_id = _investments_for(session.id)[0].id

        timekeeping_service.edit_session(
            session_id=session.id,
            actor=partner,
            fields={"hourly_rate": 30, "end_time": "2026-03-02T11:00:00Z"},
        )

        investments = _investments_for(session.id)
        assert [i.id for i in investments] == [investment_id]
        assert investments[0].amount == pytest.approx(60.0)
        assert investments[0].description == "Investimento de Tempo (2.00h)"

    def test_moving_session_to_another_month_moves_investment_date(self, partner, clock):
        session = _worked_session(partner, clock, hours=3, rate=20)

        timekeeping_service.edit_session(
            session_id=session.id,
            actor=partner,
            fields={"start_time": "2026-04-01T09:00:00Z", "end_time": "2026-04-01T11:00:00Z"},
        )

        investment = _investments_for(session.id)[0]
        assert investment.date == datetime(2026, 4, 1, 11, 0)
        assert investment.amount == pytest.approx(40.0)

    def test_edit_rejects_end_before_start(self, partner, clock):
        session = _worked_session(partner, clock)
        with pytest.raises(TimekeepingError):
            timekeeping_service.edit_session(
                session_id=session.id, actor=partner, fields={"end_time": "2026-03-02T08:00:00Z"}
            )

    def test_edit_rejects_unknown_fields(self, partner, clock):
        session = _worked_session(partner, clock)
        with pytest.raises(ValidationError):
            timekeeping_service.edit_session(session_id=session.id, actor=partner, fields={"user_id": 99})

    def test_running_session_cannot_be_edited(self, partner, clock):
        session = timekeeping_service.start_session(user=partner, hourly_rate=10)
        with pytest.raises(TimekeepingError):
            timekeeping_service.edit_session(session_id=session.id, actor=partner, fields={"hourly_rate": 12})

    def test_admin_may_edit_any_session(self, partner, admin_user, clock):
        session = _worked_session(partner, clock)
        timekeeping_service.edit_session(session_id=session.id, actor=admin_user, fields={"is_paid": True})
        assert _investments_for(session.id) == []

    def test_delete_session_removes_investment(self, partner, clock):
        session = _worked_session(partner, clock)
        session_id = session.id

        assert timekeeping_service.delete_session(session_id=session_id, actor=partner) is True
        assert db.session.get(TimeSession, session_id) is None
        assert _investments_for(session_id) == []
        assert timekeeping_service.delete_session(session_id=session_id, actor=partner) is False

    def test_time_investment_cannot_be_edited_directly(self, partner, clock):
        session = _worked_session(partner, clock)
        investment = _investments_for(session.id)[0]

        with pytest.raises(InvestmentError):
            investment_service.update_investment(partner, investment.id, {"amount": 1})
        with pytest.raises(InvestmentError):
            investment_service.delete_investment(partner, investment.id)


class TestCashInvestments:

    def test_create_and_list(self, partner, other_partner):
        investment_service.create_investment(partner, {"description": "Capital inicial", "amount": 100})
        investment_service.create_investment(other_partner, {"description": "Estoque", "amount": 300})

        assert len(investment_service.list_investments()) == 2
        mine = investment_service.list_investments(user_id=partner.id)
        assert [i.amount for i in mine] == [100]

    def test_only_owner_or_admin_can_edit(self, partner, other_partner, admin_user):
        investment = investment_service.create_investment(partner, {"description": "Capital", "amount": 100})

        with pytest.raises(AuthorizationError):
            investment_service.update_investment(other_partner, investment.id, {"amount": 5})

        updated = investment_service.update_investment(admin_user, investment.id, {"amount": 150})
        assert updated.amount == pytest.approx(150.0)

    def test_amount_must_be_positive(self, partner):
        with pytest.raises(ValidationError):
            investment_service.create_investment(partner, {"description": "Nada", "amount": 0})
