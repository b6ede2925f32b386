"""Papéis e permissões (tabela estática papel -> permissões).

Rotas usam ``require_permission`` para checagens finas e ``require_roles``
quando a regra é por papel (ex: iniciar atendimento só DENTIST/OWNER).
"""

from __future__ import annotations

from functools import wraps

from flask import g

from ..errors import ForbiddenError, UnauthorizedError
from .models import UserRole


class Permission:
    CLINIC_MANAGE = "clinic:manage"
    USERS_MANAGE = "users:manage"
    DENTISTS_MANAGE = "dentists:manage"
    PATIENTS_VIEW = "patients:view"
    PATIENTS_MANAGE = "patients:manage"
    APPOINTMENTS_VIEW = "appointments:view"
    APPOINTMENTS_MANAGE = "appointments:manage"
    RECORDS_VIEW = "records:view"
    RECORDS_MANAGE = "records:manage"
    TREATMENT_PLANS_VIEW = "treatment-plans:view"
    TREATMENT_PLANS_MANAGE = "treatment-plans:manage"
    TREATMENT_PLANS_APPROVE = "treatment-plans:approve"
    FINANCE_VIEW = "finance:view"
    FINANCE_MANAGE = "finance:manage"
    INVENTORY_VIEW = "inventory:view"
    INVENTORY_MANAGE = "inventory:manage"
    BILLING_MANAGE = "billing:manage"
    REPORTS_VIEW = "reports:view"

    ALL = (
        CLINIC_MANAGE,
        USERS_MANAGE,
        DENTISTS_MANAGE,
        PATIENTS_VIEW,
        PATIENTS_MANAGE,
        APPOINTMENTS_VIEW,
        APPOINTMENTS_MANAGE,
        RECORDS_VIEW,
        RECORDS_MANAGE,
        TREATMENT_PLANS_VIEW,
        TREATMENT_PLANS_MANAGE,
        TREATMENT_PLANS_APPROVE,
        FINANCE_VIEW,
        FINANCE_MANAGE,
        INVENTORY_VIEW,
        INVENTORY_MANAGE,
        BILLING_MANAGE,
        REPORTS_VIEW,
    )


ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    UserRole.OWNER: frozenset(Permission.ALL),
    UserRole.ADMIN: frozenset(Permission.ALL)
    - {Permission.CLINIC_MANAGE, Permission.BILLING_MANAGE},
    UserRole.DENTIST: frozenset(
        {
            Permission.PATIENTS_VIEW,
            Permission.APPOINTMENTS_VIEW,
            Permission.RECORDS_VIEW,
            Permission.RECORDS_MANAGE,
            Permission.TREATMENT_PLANS_VIEW,
            Permission.TREATMENT_PLANS_MANAGE,
            Permission.TREATMENT_PLANS_APPROVE,
            Permission.INVENTORY_VIEW,
        }
    ),
    UserRole.RECEPTIONIST: frozenset(
        {
            Permission.PATIENTS_VIEW,
            Permission.PATIENTS_MANAGE,
            Permission.APPOINTMENTS_VIEW,
            Permission.APPOINTMENTS_MANAGE,
            Permission.TREATMENT_PLANS_VIEW,
            Permission.INVENTORY_VIEW,
        }
    ),
}

# Grupos compostos aceitos por require_roles
ROLE_GROUPS = {
    "gestao": {UserRole.OWNER, UserRole.ADMIN},
    "clinico": {UserRole.OWNER, UserRole.DENTIST},
    "equipe": set(UserRole.ALL),
}


def get_role_permissions(role: str) -> frozenset[str]:
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(role: str, permission: str) -> bool:
    return permission in get_role_permissions(role)


def current_user():
    user = getattr(g, "user", None)
    if user is None:
        raise UnauthorizedError("Não autorizado")
    return user


def current_clinic_id() -> int:
    return current_user().clinic_id


def is_admin_role(role: str) -> bool:
    return role in ROLE_GROUPS["gestao"]


def require_permission(*permissions: str, message: str | None = None):
    """Exige que o papel do usuário tenha todas as permissões informadas."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = current_user()
            if not all(has_permission(user.role, p) for p in permissions):
                raise ForbiddenError(message or "Permissão insuficiente")
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def require_roles(*roles: str, message: str | None = None):
    """Exige um dos papéis (ou grupos em ROLE_GROUPS).

    Sem argumentos => apenas exige login.
    """

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = current_user()
            if roles:
                allowed: set[str] = set()
                for r in roles:
                    allowed.update(ROLE_GROUPS.get(r, {r}))
                if user.role not in allowed:
                    raise ForbiddenError(message or "Permissão insuficiente")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
