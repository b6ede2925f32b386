"""Regras de administração de usuários da clínica."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_

from .. import db
from ..auth.models import User, UserRole
from ..auth.services import email_in_use
from ..errors import BusinessRuleError, ForbiddenError, ValidationError
from ..utils_db import commit_with_retry


def list_users(
    clinic_id: int,
    *,
    role: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
) -> list[User]:
    q = User.query.filter(User.clinic_id == clinic_id)
    if role:
        q = q.filter(User.role == role)
    if is_active is not None:
        q = q.filter(User.is_active.is_(is_active))
    if search:
        like = f"%{search.lower()}%"
        q = q.filter(or_(func.lower(User.name).like(like), func.lower(User.email).like(like)))
    return q.order_by(User.name.asc()).all()


def _set_password(user: User, password: str) -> None:
    try:
        user.set_password(password)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def create_user(actor: User, data: dict[str, Any]) -> User:
    role = data["role"]
    if actor.role == UserRole.ADMIN and role == UserRole.OWNER:
        raise ForbiddenError("Administradores não podem criar proprietários")
    email = data["email"].strip().lower()
    if email_in_use(email):
        raise BusinessRuleError("Email já cadastrado")
    user = User()
    user.clinic_id = actor.clinic_id
    user.name = data["name"].strip()
    user.email = email
    user.role = role
    user.is_active = data.get("is_active", True)
    _set_password(user, data["password"])
    db.session.add(user)
    commit_with_retry()
    return user


def _active_owner_count(clinic_id: int) -> int:
    return User.query.filter(
        User.clinic_id == clinic_id, User.role == UserRole.OWNER, User.is_active.is_(True)
    ).count()


def update_user(actor: User, target: User, data: dict[str, Any]) -> User:
    """Atualiza usuário aplicando as travas de hierarquia.

    - ADMIN não edita OWNER nem promove alguém a OWNER;
    - ninguém desativa a si mesmo ou altera o próprio papel;
    - o único OWNER ativo não pode ser desativado nem rebaixado.
    """
    new_role = data.get("role")
    deactivating = data.get("is_active") is False
    role_changing = new_role is not None and new_role != target.role

    if actor.role == UserRole.ADMIN:
        if target.role == UserRole.OWNER:
            raise ForbiddenError("Administradores não podem editar proprietários")
        if new_role == UserRole.OWNER:
            raise ForbiddenError("Administradores não podem promover usuários a proprietário")
    if actor.id == target.id:
        if deactivating:
            raise BusinessRuleError("Você não pode desativar sua própria conta")
        if role_changing:
            raise BusinessRuleError("Você não pode alterar seu próprio papel")
    if target.role == UserRole.OWNER and (deactivating or role_changing):
        if target.is_active and _active_owner_count(target.clinic_id) <= 1:
            raise BusinessRuleError("Não é possível desativar ou alterar o papel do único proprietário")

    if data.get("name"):
        target.name = data["name"].strip()
    if data.get("email"):
        email = data["email"].strip().lower()
        if email_in_use(email, exclude_id=target.id):
            raise BusinessRuleError("Email já cadastrado")
        target.email = email
    if data.get("password"):
        _set_password(target, data["password"])
    if role_changing:
        target.role = new_role
    if "is_active" in data and data["is_active"] is not None:
        target.is_active = bool(data["is_active"])
    commit_with_retry()
    return target


def eligible_dentist_users(clinic_id: int) -> list[User]:
    """Usuários DENTIST ativos ainda sem perfil de dentista."""
    from ..dentistas.models import Dentist

    linked = db.select(Dentist.user_id).where(Dentist.clinic_id == clinic_id)
    return (
        User.query.filter(
            User.clinic_id == clinic_id,
            User.role == UserRole.DENTIST,
            User.is_active.is_(True),
            User.id.not_in(linked),
        )
        .order_by(User.name.asc())
        .all()
    )
