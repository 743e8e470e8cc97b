"""
Aggregation tests.

The pure functions are exercised with plain dicts; the DB-backed reports
with real records.
"""

from datetime import date, datetime

import pytest

from bizledger.models import Entry, MonthlySummary, UnplannedExpense
from bizledger.services import (
    cash_service,
    debt_service,
    entry_service,
    investment_service,
    product_service,
    reporting_service,
    sales_service,
)
from bizledger.services.auth_service import AuthorizationError
from bizledger.services.reporting_service import ReportError


INVESTMENTS = [
    {"user_id": 1, "user_name": "ana", "amount": 100.0},
    {"user_id": 2, "user_name": "bruno", "amount": 250.0},
    {"user_id": 2, "user_name": "bruno", "amount": 50.0},
]


# =============================================================================
# INVESTMENTS
# =============================================================================


class TestInvestmentAggregation:

    def test_totals_and_percentages(self):
        assert reporting_service.total_investment(INVESTMENTS) == pytest.approx(400.0)
        assert reporting_service.user_contribution(INVESTMENTS, 2) == pytest.approx(300.0)
        assert reporting_service.user_investment_percentage(INVESTMENTS, 1) == pytest.approx(25.0)
        assert reporting_service.user_investment_percentage(INVESTMENTS, 2) == pytest.approx(75.0)

    def test_percentage_is_zero_without_investments(self):
        assert reporting_service.user_investment_percentage([], 1) == 0.0
        assert reporting_service.user_investment_percentage(INVESTMENTS, 99) == 0.0

    def test_distribution_in_first_seen_order_with_colors(self):
        rows = reporting_service.investment_distribution(INVESTMENTS)

        assert [r["name"] for r in rows] == ["ana", "bruno"]
        assert [r["amount"] for r in rows] == [pytest.approx(100.0), pytest.approx(300.0)]
        assert [r["percentage"] for r in rows] == [pytest.approx(25.0), pytest.approx(75.0)]
        assert rows[0]["color"] == reporting_service.CHART_COLORS[0]
        assert rows[1]["color"] == reporting_service.CHART_COLORS[1]

    def test_distribution_palette_cycles(self):
        investments = [{"user_id": i, "user_name": f"u{i}", "amount": 1} for i in range(9)]
        rows = reporting_service.investment_distribution(investments)
        palette = reporting_service.CHART_COLORS
        assert rows[len(palette)]["color"] == palette[0]


# =============================================================================
# CASH
# =============================================================================


MOVEMENTS = [
    {"movement_type": "entrada", "amount": 500.0},
    {"movement_type": "entrada", "amount": 250.0},
    {"movement_type": "saida", "amount": 100.0},
]


class TestCashAggregation:

    def test_cash_totals(self):
        assert reporting_service.cash_totals(MOVEMENTS) == {
            "cash_in": pytest.approx(750.0),
            "cash_out": pytest.approx(100.0),
            "balance": pytest.approx(650.0),
        }

    def test_balance_subtracts_only_paid_debts(self):
        debts = [{"amount": 200.0, "paid": True}, {"amount": 1000.0, "paid": False}]
        assert reporting_service.cash_balance(MOVEMENTS, paid_debts=debts) == pytest.approx(450.0)

    def test_balance_subtracts_unplanned_expenses(self):
        expenses = [{"amount": 50.0}, {"amount": 25.0}]
        balance = reporting_service.cash_balance(
            MOVEMENTS,
            paid_debts=[{"amount": 200.0, "paid": True}],
            unplanned_expenses=expenses,
        )
        assert balance == pytest.approx(375.0)

    def test_empty_cash_box(self):
        assert reporting_service.cash_balance([]) == 0.0


# =============================================================================
# MONTHS
# =============================================================================


class TestMonthlySeries:

    def test_month_range_crosses_year_boundary(self):
        assert reporting_service.month_range(date(2025, 11, 20), date(2026, 2, 1)) == [
            "2025-11", "2025-12", "2026-01", "2026-02",
        ]
        assert reporting_service.month_range(date(2026, 2, 1), date(2025, 1, 1)) == []

    def test_fixed_debt_repeats_monthly(self):
        debt = {"amount": 80.0, "debt_type": "FIXED", "due_date": "2026-11-15", "duration_months": 3}
        assert reporting_service.debt_occurrences(debt) == [
            ("2026-11", 80.0), ("2026-12", 80.0), ("2027-01", 80.0),
        ]

    def test_single_debt_falls_due_once(self):
        debt = {"amount": 80.0, "debt_type": "SINGLE", "due_date": date(2026, 5, 1)}
        assert reporting_service.debt_occurrences(debt) == [("2026-05", 80.0)]

    def test_series_have_one_value_per_month(self):
        now = datetime(2026, 4, 10)
        result = reporting_service.monthly_series(
            now,
            sales=[{"sold_at": datetime(2026, 1, 5), "total_price": 75.0}],
            entries=[{"date": datetime(2026, 3, 1), "amount": 20.0}],
            cash_movements=[{"date": "2026-02-10T12:00:00Z", "movement_type": "saida", "amount": 5.0}],
        )

        assert result["months"] == ["2026-01", "2026-02", "2026-03", "2026-04"]
        assert result["series"]["sales"] == [75.0, 0.0, 0.0, 0.0]
        assert result["series"]["entries"] == [0.0, 0.0, 20.0, 0.0]
        assert result["series"]["cash_out"] == [0.0, 5.0, 0.0, 0.0]
        assert all(len(values) == 4 for values in result["series"].values())

    def test_series_extend_to_future_debts(self):
        result = reporting_service.monthly_series(
            datetime(2026, 1, 10),
            debts=[{"amount": 10.0, "debt_type": "FIXED", "due_date": "2026-01-05", "duration_months": 3}],
        )
        assert result["months"] == ["2026-01", "2026-02", "2026-03"]
        assert result["series"]["debts"] == [10.0, 10.0, 10.0]

    def test_no_records_no_months(self):
        result = reporting_service.monthly_series(datetime(2026, 1, 10))
        assert result["months"] == []
        assert result["series"]["sales"] == []


# =============================================================================
# PRODUCTS
# =============================================================================


class TestProductValue:

    def test_total_product_value_sums_sale_prices(self):
        products = [{"sale_price": 15.0, "quantity": 20}, {"sale_price": 10.0, "quantity": 0}]
        assert reporting_service.total_product_value(products) == pytest.approx(25.0)

    def test_inventory_value_ignores_negative_stock(self):
        products = [{"sale_price": 15.0, "quantity": 2}, {"sale_price": 10.0, "quantity": -3}]
        assert reporting_service.inventory_value(products) == pytest.approx(30.0)


# =============================================================================
# DB-BACKED REPORTS
# =============================================================================


class TestReports:

    def test_dashboard_for_partner_and_admin(self, partner, other_partner, admin_user):
        investment_service.create_investment(partner, {"description": "Capital", "amount": 100})
        investment_service.create_investment(other_partner, {"description": "Capital", "amount": 300})

        view = reporting_service.dashboard(partner)
        assert view["greeting"] == "Ana"
        assert view["total_investment"] == pytest.approx(400.0)
        assert view["user_contribution"] == pytest.approx(100.0)
        assert view["user_percentage"] == pytest.approx(25.0)
        assert view["cards"] == reporting_service.PARTNER_CARDS

        admin_view = reporting_service.dashboard(admin_user)
        assert admin_view["greeting"] == "Administrador"
        assert admin_view["cards"] == reporting_service.ADMIN_CARDS
        assert "user_percentage" not in admin_view

    def test_cash_flow_report(self, partner):
        cash_service.create_movement(partner, {"movement_type": "entrada", "amount": 500, "description": "Vendas"})
        cash_service.create_movement(partner, {"movement_type": "saida", "amount": 100, "description": "Frete"})
        debt = debt_service.create_debt(partner, {"description": "Aluguel", "amount": 200, "due_date": "2026-03-10"})
        debt_service.set_paid(debt.id, True)
        entry_service.create_line(UnplannedExpense, partner, {"description": "Conserto", "amount": 50})

        report = reporting_service.cash_flow_report(datetime(2026, 3, 15))

        assert report["balance"] == pytest.approx(400.0)
        assert report["balance_after_debts"] == pytest.approx(200.0)
        assert report["balance_after_expenses"] == pytest.approx(150.0)
        assert report["current_month"] == {"month": "2026-03", "paid_total": 200.0, "unpaid_total": 0}

    def test_product_value_report(self, db_session):
        product_service.create_product({"description": "Camiseta", "cost_price": 10, "profit_margin": 50, "quantity": 2})
        report = reporting_service.product_value_report()
        assert report == {"count": 1, "total_product_value": pytest.approx(15.0), "inventory_value": pytest.approx(30.0)}

    def test_close_month_requires_admin(self, partner):
        with pytest.raises(AuthorizationError):
            reporting_service.close_month(partner, 2026, 3)

    def test_close_month_rejects_bad_month(self, admin_user):
        with pytest.raises(ReportError):
            reporting_service.close_month(admin_user, 2026, 13)

    def test_close_month_snapshots_and_overwrites(self, admin_user, partner):
        product = product_service.create_product(
            {"description": "Camiseta", "cost_price": 10, "profit_margin": 50, "quantity": 20}
        )
        sale = sales_service.create_sale(product.id, 5)
        entry_service.create_line(Entry, partner, {"description": "Serviço", "amount": 40, "date": sale.sold_at})
        year, month = sale.sold_at.year, sale.sold_at.month

        summary = reporting_service.close_month(admin_user, year, month)
        assert summary.total_sales == pytest.approx(75.0)
        assert summary.sales_count == 1
        assert summary.total_entries == pytest.approx(40.0)

        sales_service.create_sale(product.id, 1)
        again = reporting_service.close_month(admin_user, year, month)

        assert again.id == summary.id
        assert again.sales_count == 2
        assert len(reporting_service.list_monthly_summaries()) == 1
        assert isinstance(reporting_service.list_monthly_summaries()[0], MonthlySummary)
