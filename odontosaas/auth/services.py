"""Cadastro de clínica (signup) e autenticação por email/senha."""

from __future__ import annotations

import logging

from flask import current_app

from .. import db
from ..core.models import Clinic
from ..errors import ForbiddenError, UnauthorizedError, ValidationError
from ..utils_db import commit_with_retry, transactional
from .models import User, UserRole

logger = logging.getLogger("odontosaas.auth")


def email_in_use(email: str, exclude_id: int | None = None) -> bool:
    """Email é único entre todas as clínicas (login não pede clínica)."""
    q = db.session.query(User.id).filter(User.email == email.strip().lower())
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    return q.first() is not None


def signup_clinic(*, clinic_name: str, name: str, email: str, password: str) -> tuple[Clinic, User]:
    """Cria clínica + usuário OWNER numa única transação."""
    email = email.strip().lower()
    if email_in_use(email):
        raise ValidationError("Email já cadastrado")
    with transactional():
        clinic = Clinic()
        clinic.name = clinic_name.strip()
        db.session.add(clinic)
        db.session.flush()

        owner = User()
        owner.clinic_id = clinic.id
        owner.name = name.strip()
        owner.email = email
        owner.role = UserRole.OWNER
        owner.is_active = True
        try:
            owner.set_password(password)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        db.session.add(owner)
    logger.info("Nova clínica %s criada por %s", clinic.id, email)
    return clinic, owner


def authenticate(email: str, password: str) -> User:
    """Valida credenciais aplicando bloqueio por tentativas."""
    email = (email or "").strip().lower()
    user = User.query.filter(User.email == email).first()
    if user is None:
        raise UnauthorizedError("Credenciais inválidas")
    if not user.check_password(password):
        if user.is_locked:
            raise ForbiddenError("Usuário bloqueado. Tente novamente mais tarde.")
        user.register_failed_login(
            current_app.config.get("MAX_FAILED_LOGINS", 5),
            current_app.config.get("LOCKOUT_MINUTES", 15),
        )
        commit_with_retry()
        logger.warning("Falha de login para %s", email)
        raise UnauthorizedError("Credenciais inválidas")
    if user.is_locked:
        logger.warning("Login bloqueado para %s", email)
        raise ForbiddenError("Usuário bloqueado. Tente novamente mais tarde.")
    if not user.is_active:
        raise ForbiddenError("Usuário inativo")
    user.reset_failed_login()
    commit_with_retry()
    return user


def session_payload(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "clinicId": user.clinic_id,
        "clinicName": user.clinic.name if user.clinic else None,
    }
