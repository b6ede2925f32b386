"""Serviços centrais: auditoria e dados da clínica."""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from .. import db
from ..errors import ValidationError
from ..utils_db import commit_with_retry
from .models import AuditLog, Clinic

logger = logging.getLogger("odontosaas.audit")


class AuditAction:
    ACCESS_RECORD = "ACCESS_RECORD"
    CREATE_RECORD = "CREATE_RECORD"
    UPDATE_RECORD = "UPDATE_RECORD"
    DELETE_RECORD = "DELETE_RECORD"


class TargetType:
    RECORD = "Record"
    PATIENT = "Patient"
    APPOINTMENT = "Appointment"
    USER = "User"


def create_audit_log(
    *,
    clinic_id: int,
    user_id: int,
    action: str,
    target_id: Any = None,
    target_type: str | None = None,
    metadata: dict | None = None,
) -> AuditLog | None:
    """Registra entrada de auditoria sem nunca quebrar a operação principal.

    Deve ser chamada depois do commit da operação auditada: em caso de
    falha apenas a entrada de auditoria é descartada.
    """
    try:
        entry = AuditLog()
        entry.clinic_id = clinic_id
        entry.user_id = user_id
        entry.action = action
        entry.target_id = str(target_id) if target_id is not None else None
        entry.target_type = target_type
        entry.extra = json.dumps(metadata, default=str) if metadata else None
        db.session.add(entry)
        commit_with_retry()
        return entry
    except SQLAlchemyError as exc:
        logger.error("Falha ao gravar auditoria %s (%s): %s", action, target_id, exc)
        db.session.rollback()
        return None


def list_audit_logs(
    clinic_id: int,
    *,
    action: str | None = None,
    target_type: str | None = None,
    target_id: str | None = None,
    limit: int = 100,
) -> list[AuditLog]:
    q = AuditLog.query.filter(AuditLog.clinic_id == clinic_id)
    if action:
        q = q.filter(AuditLog.action == action)
    if target_type:
        q = q.filter(AuditLog.target_type == target_type)
    if target_id:
        q = q.filter(AuditLog.target_id == str(target_id))
    return q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()


def update_clinic(clinic: Clinic, changes: dict[str, Any]) -> Clinic:
    for field in ("name", "email", "phone", "address"):
        if field in changes:
            value = changes[field]
            if isinstance(value, str):
                value = value.strip() or None
            if field == "name" and not value:
                raise ValidationError("Nome da clínica é obrigatório")
            setattr(clinic, field, value)
    commit_with_retry()
    return clinic
