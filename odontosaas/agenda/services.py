"""Serviços da agenda: criação, edição e consultas de agendamentos."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from .. import db
from ..catalogo.models import Procedure
from ..dentistas.services import require_active_dentist
from ..errors import BusinessRuleError, ValidationError
from ..pacientes.services import require_active_patient
from ..utils_dates import end_of_day, start_of_day, utcnow
from ..utils_db import commit_with_retry, get_or_404
from .models import Appointment, AppointmentStatus


def list_appointments(
    clinic_id: int,
    *,
    dentist_id: int | None = None,
    patient_id: int | None = None,
    status: str | None = None,
    day: datetime | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[Appointment]:
    q = Appointment.query.filter(Appointment.clinic_id == clinic_id)
    if dentist_id is not None:
        q = q.filter(Appointment.dentist_id == dentist_id)
    if patient_id is not None:
        q = q.filter(Appointment.patient_id == patient_id)
    if status:
        q = q.filter(Appointment.status == status)
    if day is not None:
        q = q.filter(Appointment.date.between(start_of_day(day), end_of_day(day)))
    if date_from is not None:
        q = q.filter(Appointment.date >= date_from)
    if date_to is not None:
        q = q.filter(Appointment.date <= end_of_day(date_to))
    return q.order_by(Appointment.date.asc()).all()


def upcoming_appointments(clinic_id: int, limit: int = 5) -> list[Appointment]:
    return (
        Appointment.query.filter(
            Appointment.clinic_id == clinic_id,
            Appointment.date >= utcnow(),
            Appointment.status.in_(AppointmentStatus.ACTIVE),
        )
        .order_by(Appointment.date.asc())
        .limit(limit)
        .all()
    )


def _apply_procedure(appt: Appointment, procedure_id: int | None) -> None:
    if procedure_id is None:
        appt.procedure_id = None
        appt.procedure_snapshot = None
        return
    procedure = get_or_404(Procedure, procedure_id, appt.clinic_id, "Procedimento não encontrado")
    if not procedure.is_active:
        raise BusinessRuleError("Procedimento inativo")
    appt.procedure_id = procedure.id
    appt.procedure_snapshot = procedure.snapshot()
    if not appt.procedure:
        appt.procedure = procedure.name


def _apply_fields(appt: Appointment, data: dict[str, Any]) -> None:
    if data.get("patient_id") is not None:
        appt.patient_id = require_active_patient(appt.clinic_id, data["patient_id"]).id
    if data.get("dentist_id") is not None:
        appt.dentist_id = require_active_dentist(appt.clinic_id, data["dentist_id"]).id
    if data.get("date") is not None:
        appt.date = data["date"]
    if data.get("duration_minutes") is not None:
        appt.duration_minutes = data["duration_minutes"]
    if data.get("status"):
        appt.status = data["status"]
    if "procedure" in data:
        appt.procedure = (data["procedure"] or "").strip() or None
    if "notes" in data:
        appt.notes = (data["notes"] or "").strip() or None
    if "procedure_id" in data:
        _apply_procedure(appt, data["procedure_id"])


def create_appointment(clinic_id: int, data: dict[str, Any]) -> Appointment:
    if data.get("date") is None:
        raise ValidationError("Data é obrigatória")
    appt = Appointment()
    appt.clinic_id = clinic_id
    appt.duration_minutes = 30
    appt.status = AppointmentStatus.SCHEDULED
    _apply_fields(appt, data)
    db.session.add(appt)
    commit_with_retry()
    return appt


def update_appointment(appt: Appointment, data: dict[str, Any]) -> Appointment:
    try:
        _apply_fields(appt, data)
    except Exception:
        db.session.rollback()
        raise
    commit_with_retry()
    return appt
