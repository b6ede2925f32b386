from flask import Blueprint

from ..auth.permissions import current_clinic_id, require_roles
from ..utils_api import ok
from . import services

main_bp = Blueprint("main", __name__)


@main_bp.route("", methods=["GET"])
@require_roles()
def dashboard():  # painel inicial
    return ok(services.dashboard_data(current_clinic_id()))
