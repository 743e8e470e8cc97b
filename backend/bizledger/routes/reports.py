# Overview: Flask API routes for reports; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g, current_app

from ..decorators import require_auth, require_admin
from ..services import reporting_service
from ..services.auth_service import AuthorizationError
from ..services.reporting_service import ReportError

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@require_auth
def dashboard_route():
    return jsonify(reporting_service.dashboard(g.current_user))


@reports_bp.get("/investments")
@require_auth
def investments_route():
    return jsonify(reporting_service.investments_report())


@reports_bp.get("/cash-flow")
@require_auth
def cash_flow_route():
    try:
        return jsonify(reporting_service.cash_flow_report())
    except Exception:
        current_app.logger.exception("Failed to build cash flow report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/monthly-summaries")
@require_auth
def list_monthly_summaries_route():
    summaries = reporting_service.list_monthly_summaries()
    return jsonify({"items": [s.to_dict() for s in summaries], "count": len(summaries)})


@reports_bp.post("/monthly-summaries")
@require_auth
@require_admin
def close_month_route():
    """Body: year, month. Re-closing a month overwrites its summary."""
    data = request.get_json(silent=True) or {}
    year = data.get("year")
    month = data.get("month")
    if not isinstance(year, int) or not isinstance(month, int):
        return jsonify({"error": "year and month must be integers"}), 400

    try:
        summary = reporting_service.close_month(g.current_user, year, month)
        return jsonify({"summary": summary.to_dict()}), 201
    except AuthorizationError as e:
        return jsonify({"error": str(e)}), 403
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
