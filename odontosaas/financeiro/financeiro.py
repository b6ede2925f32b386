from flask import Blueprint

from ..auth.permissions import Permission, current_clinic_id, require_permission
from ..utils_api import arg_choice, arg_datetime, arg_int, arg_limit, ok, submitted, validate_json
from ..utils_dates import utcnow
from ..utils_db import get_or_404
from . import services
from .forms import PaymentForm
from .models import Payment, PaymentMethod

financeiro_bp = Blueprint("financeiro", __name__)


@financeiro_bp.route("", methods=["GET"])
@require_permission(Permission.FINANCE_VIEW)
def list_payments():
    payments = services.list_payments(
        current_clinic_id(),
        patient_id=arg_int("patientId"),
        method=arg_choice("method", PaymentMethod.ALL),
        start_date=arg_datetime("startDate"),
        end_date=arg_datetime("endDate"),
    )
    return ok([p.to_dict() for p in payments])


@financeiro_bp.route("", methods=["POST"])
@require_permission(Permission.FINANCE_MANAGE)
def create_payment():
    form = validate_json(PaymentForm)
    payment = services.create_payment(current_clinic_id(), submitted(form))
    return ok(payment.to_dict(), 201)


@financeiro_bp.route("/summary", methods=["GET"])
@require_permission(Permission.FINANCE_VIEW)
def summary():
    clinic_id = current_clinic_id()
    if arg_choice("type", ("daily", "monthly")) == "monthly":
        now = utcnow()
        return ok(
            services.monthly_summary(
                clinic_id, arg_int("year", now.year), arg_int("month", now.month)
            )
        )
    return ok(services.daily_summary(clinic_id, arg_datetime("date")))


@financeiro_bp.route("/recent", methods=["GET"])
@require_permission(Permission.FINANCE_VIEW)
def recent():
    return ok([p.to_dict() for p in services.recent_payments(current_clinic_id(), arg_limit())])


@financeiro_bp.route("/<int:payment_id>", methods=["GET"])
@require_permission(Permission.FINANCE_VIEW)
def get_payment(payment_id: int):
    payment = get_or_404(Payment, payment_id, current_clinic_id(), "Pagamento não encontrado")
    return ok(payment.to_dict())
