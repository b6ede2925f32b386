from __future__ import annotations

from flask import Blueprint
from flask_wtf import FlaskForm
from wtforms import BooleanField, PasswordField, StringField
from wtforms.validators import AnyOf, DataRequired, Email, Length, Optional

from ..auth.models import User, UserRole
from ..auth.permissions import (
    Permission,
    current_clinic_id,
    current_user,
    is_admin_role,
    require_permission,
    require_roles,
)
from ..errors import ForbiddenError
from ..utils_api import arg_bool, arg_choice, arg_str, ok, submitted, validate_json
from ..utils_db import get_or_404
from . import services

users_bp = Blueprint("users", __name__)

ROLE_MESSAGE = "Papel deve ser OWNER, ADMIN, DENTIST ou RECEPTIONIST"


class UserForm(FlaskForm):  # campos principais
    name = StringField(
        "Nome",
        validators=[
            DataRequired(message="Nome é obrigatório"),
            Length(min=2, max=100, message="Nome deve ter entre 2 e 100 caracteres"),
        ],
    )
    email = StringField(
        "Email", validators=[DataRequired(message="Email é obrigatório"), Email(message="Email inválido")]
    )
    password = PasswordField(
        "Senha",
        validators=[
            DataRequired(message="Senha é obrigatória"),
            Length(min=6, max=100, message="Senha deve ter entre 6 e 100 caracteres"),
        ],
    )
    role = StringField(
        "Papel",
        validators=[DataRequired(message=ROLE_MESSAGE), AnyOf(UserRole.ALL, message=ROLE_MESSAGE)],
    )
    is_active = BooleanField("Ativo")


class UserUpdateForm(FlaskForm):
    name = StringField(
        "Nome",
        validators=[Optional(), Length(min=2, max=100, message="Nome deve ter entre 2 e 100 caracteres")],
    )
    email = StringField("Email", validators=[Optional(), Email(message="Email inválido")])
    password = PasswordField(
        "Senha",
        validators=[Optional(), Length(min=6, max=100, message="Senha deve ter entre 6 e 100 caracteres")],
    )
    role = StringField("Papel", validators=[Optional(), AnyOf(UserRole.ALL, message=ROLE_MESSAGE)])
    is_active = BooleanField("Ativo")


@users_bp.route("", methods=["GET"])
@require_permission(Permission.USERS_MANAGE)
def list_users():
    users = services.list_users(
        current_clinic_id(),
        role=arg_choice("role", UserRole.ALL),
        is_active=arg_bool("isActive"),
        search=arg_str("search"),
    )
    return ok([u.to_dict() for u in users])


@users_bp.route("", methods=["POST"])
@require_permission(Permission.USERS_MANAGE)
def create_user():
    form = validate_json(UserForm)
    user = services.create_user(current_user(), submitted(form))
    return ok(user.to_dict(), 201)


@users_bp.route("/eligible", methods=["GET"])
@require_permission(Permission.USERS_MANAGE)
def eligible_users():
    return ok([u.to_dict() for u in services.eligible_dentist_users(current_clinic_id())])


@users_bp.route("/<int:user_id>", methods=["GET"])
@require_roles()
def get_user(user_id: int):
    actor = current_user()
    if not is_admin_role(actor.role) and actor.id != user_id:
        raise ForbiddenError("Acesso negado")
    user = get_or_404(User, user_id, actor.clinic_id, "Usuário não encontrado")
    return ok(user.to_dict())


@users_bp.route("/<int:user_id>", methods=["PATCH", "PUT"])
@require_permission(Permission.USERS_MANAGE)
def update_user(user_id: int):
    actor = current_user()
    target = get_or_404(User, user_id, actor.clinic_id, "Usuário não encontrado")
    form = validate_json(UserUpdateForm)
    services.update_user(actor, target, submitted(form))
    return ok(target.to_dict())
