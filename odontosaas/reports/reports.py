from flask import Blueprint

from ..agenda.models import AppointmentStatus
from ..auth.models import UserRole
from ..auth.permissions import current_user, require_roles
from ..dentistas.services import find_by_user
from ..errors import NotFoundError, ValidationError
from ..financeiro.models import PaymentMethod
from ..utils_api import arg_bool, arg_choice, arg_datetime, arg_int, ok
from ..utils_dates import current_month_range, end_of_day
from . import services

reports_bp = Blueprint("reports", __name__)


def _period():
    """Intervalo de ?from/?to; padrão mês corrente."""
    default_start, default_end = current_month_range()
    start = arg_datetime("from") or default_start
    end = arg_datetime("to")
    end = end_of_day(end) if end is not None else default_end
    if start > end:
        raise ValidationError('Parâmetro "from" deve ser anterior ou igual a "to"')
    return start, end


@reports_bp.route("/appointments", methods=["GET"])
@require_roles(UserRole.OWNER, UserRole.ADMIN, UserRole.DENTIST)
def appointments():
    user = current_user()
    start, end = _period()
    dentist_id = arg_int("dentistId")
    if user.role == UserRole.DENTIST:
        # Dentista vê apenas a própria agenda
        dentist = find_by_user(user.clinic_id, user.id)
        if dentist is None:
            raise NotFoundError("Dentista não encontrado")
        dentist_id = dentist.id
    data = services.appointments_report(
        user.clinic_id,
        start,
        end,
        dentist_id=dentist_id,
        status=arg_choice("status", AppointmentStatus.ALL),
    )
    return ok(data)


@reports_bp.route("/finance", methods=["GET"])
@require_roles("gestao")
def finance():
    start, end = _period()
    data = services.finance_report(
        current_user().clinic_id, start, end, method=arg_choice("method", PaymentMethod.ALL)
    )
    return ok(data)


@reports_bp.route("/inventory", methods=["GET"])
@require_roles("gestao")
def inventory():
    start, end = _period()
    return ok(services.inventory_report(current_user().clinic_id, start, end))


@reports_bp.route("/patients", methods=["GET"])
@require_roles("gestao")
def patients():
    start, end = _period()
    data = services.patients_report(
        current_user().clinic_id, start, end, is_active=arg_bool("isActive")
    )
    return ok(data)


@reports_bp.route("/users", methods=["GET"])
@require_roles("gestao")
def users():
    data = services.users_report(
        current_user().clinic_id,
        role=arg_choice("role", UserRole.ALL),
        is_active=arg_bool("isActive"),
    )
    return ok(data)
