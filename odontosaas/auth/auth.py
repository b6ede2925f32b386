from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, jsonify, request, session
from flask_wtf import FlaskForm
from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length

from .. import db
from ..errors import UnauthorizedError
from ..utils_api import ok, validate_json
from ..utils_dates import utcnow
from . import services
from .models import User

auth_bp = Blueprint("auth", __name__)

# Rotas da API acessíveis sem sessão
PUBLIC_API_PREFIXES = ("/api/auth", "/api/health")


class LoginForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(message="Email é obrigatório")])
    password = PasswordField("Senha", validators=[DataRequired(message="Senha é obrigatória")])


class SignupForm(FlaskForm):
    clinic_name = StringField(
        "Nome da clínica",
        validators=[
            DataRequired(message="Nome da clínica é obrigatório"),
            Length(min=2, max=100, message="Nome da clínica deve ter entre 2 e 100 caracteres"),
        ],
    )
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


@auth_bp.before_app_request
def load_user():  # carrega usuário da sessão
    uid = session.get("uid")
    g.user = None
    if uid:
        user = db.session.get(User, uid)
        if user is not None and user.is_active:
            g.user = user
        else:
            session.pop("uid", None)
    # Expiração de sessão (inatividade)
    now = utcnow()
    timeout_min = current_app.config.get("SESSION_TIMEOUT_MIN", 60)
    last = session.get("_last_activity")
    if last:
        try:
            last_dt = datetime.fromisoformat(last)
            if (now - last_dt) > timedelta(minutes=timeout_min):
                session.clear()
                g.user = None
        except ValueError:  # pragma: no cover - formatação inesperada
            session.pop("_last_activity", None)
    if g.user is not None:
        session["_last_activity"] = now.isoformat()


@auth_bp.before_app_request
def enforce_login_globally():
    """If REQUIRE_LOGIN is True, every /api path needs an authenticated user.

    Exemptions: /api/auth/* and /api/health. Non-API paths are left to
    the default 404 handling.
    """
    if not current_app.config.get("REQUIRE_LOGIN", True):
        return None
    path = request.path or "/"
    if not path.startswith("/api"):
        return None
    if path.startswith(PUBLIC_API_PREFIXES):
        return None
    if getattr(g, "user", None) is None:
        raise UnauthorizedError("Não autorizado")
    return None


@auth_bp.route("/signup", methods=["POST"])
def signup():
    form = validate_json(SignupForm)
    clinic, owner = services.signup_clinic(
        clinic_name=form.clinic_name.data,
        name=form.name.data,
        email=form.email.data,
        password=form.password.data,
    )
    return ok({"clinicId": clinic.id, "userId": owner.id}, 201)


@auth_bp.route("/login", methods=["POST"])
def login():
    form = validate_json(LoginForm)
    user = services.authenticate(form.email.data, form.password.data)
    session.clear()
    session["uid"] = user.id
    session["_last_activity"] = utcnow().isoformat()
    return ok(services.session_payload(user))


@auth_bp.route("/logout", methods=["POST"])
def logout():
    session.clear()
    return ok(None)


@auth_bp.route("/session", methods=["GET"])
def current_session():
    user = getattr(g, "user", None)
    if user is None:
        return jsonify({"user": None})
    return jsonify({"user": services.session_payload(user)})
