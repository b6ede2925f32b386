from flask import Blueprint, jsonify
from flask_wtf import FlaskForm
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from wtforms import StringField
from wtforms.validators import Email, Length, Optional

from .. import db
from ..auth.permissions import Permission, current_clinic_id, require_permission, require_roles
from ..utils_api import arg_int, arg_str, ok, submitted, validate_json
from ..utils_dates import utcnow
from ..utils_db import get_or_404
from . import services
from .models import Clinic

core_bp = Blueprint("core", __name__)


class ClinicForm(FlaskForm):
    name = StringField(
        "Nome",
        validators=[Optional(), Length(min=2, max=100, message="Nome deve ter entre 2 e 100 caracteres")],
    )
    email = StringField("Email", validators=[Optional(), Email(message="Email inválido")])
    phone = StringField(
        "Telefone", validators=[Optional(), Length(max=20, message="Telefone deve ter no máximo 20 caracteres")]
    )
    address = StringField(
        "Endereço",
        validators=[Optional(), Length(max=500, message="Endereço deve ter no máximo 500 caracteres")],
    )


@core_bp.route("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return jsonify({"status": "error", "database": "disconnected"}), 500
    return jsonify({"status": "ok", "database": "connected", "timestamp": utcnow().isoformat()})


@core_bp.route("/clinic", methods=["GET"])
@require_roles()
def get_clinic():
    clinic = get_or_404(Clinic, current_clinic_id(), message="Clínica não encontrada")
    return ok(clinic.to_dict())


@core_bp.route("/clinic", methods=["PATCH"])
@require_permission(Permission.CLINIC_MANAGE)
def update_clinic():
    clinic = get_or_404(Clinic, current_clinic_id(), message="Clínica não encontrada")
    form = validate_json(ClinicForm)
    services.update_clinic(clinic, submitted(form))
    return ok(clinic.to_dict())


@core_bp.route("/audit-logs")
@require_roles("gestao")
def list_audit_logs():
    logs = services.list_audit_logs(
        current_clinic_id(),
        action=arg_str("action"),
        target_type=arg_str("targetType"),
        target_id=arg_str("targetId"),
        limit=min(arg_int("limit", 100), 500),
    )
    return ok([entry.to_dict() for entry in logs])
