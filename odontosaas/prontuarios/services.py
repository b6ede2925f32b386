from __future__ import annotations

from typing import Any

from .. import db
from ..dentistas.models import Dentist
from ..pacientes.models import Patient
from ..utils_db import commit_with_retry, get_or_404
from .models import Record


def list_records(
    clinic_id: int, *, patient_id: int | None = None, dentist_id: int | None = None
) -> list[Record]:
    q = Record.query.filter(Record.clinic_id == clinic_id)
    if patient_id is not None:
        q = q.filter(Record.patient_id == patient_id)
    if dentist_id is not None:
        q = q.filter(Record.dentist_id == dentist_id)
    return q.order_by(Record.created_at.desc(), Record.id.desc()).all()


def build_record(
    clinic_id: int,
    *,
    patient_id: int,
    dentist_id: int,
    description: str,
    procedures: list[dict[str, Any]] | None = None,
    odontogram: dict | None = None,
    appointment_id: int | None = None,
    attendance_id: int | None = None,
) -> Record:
    """Monta o prontuário na sessão sem commit (usado também ao finalizar atendimento)."""
    record = Record()
    record.clinic_id = clinic_id
    record.patient_id = patient_id
    record.dentist_id = dentist_id
    record.appointment_id = appointment_id
    record.attendance_id = attendance_id
    record.description = description
    record.procedures = procedures or []
    record.odontogram = odontogram
    db.session.add(record)
    return record


def create_record(clinic_id: int, data: dict[str, Any]) -> Record:
    get_or_404(Patient, data["patient_id"], clinic_id, "Paciente não encontrado")
    get_or_404(Dentist, data["dentist_id"], clinic_id, "Dentista não encontrado")
    if data.get("appointment_id"):
        from ..agenda.models import Appointment

        get_or_404(Appointment, data["appointment_id"], clinic_id, "Agendamento não encontrado")
    if data.get("attendance_id"):
        from ..atendimentos.models import Attendance

        get_or_404(Attendance, data["attendance_id"], clinic_id, "Atendimento não encontrado")
    procedures = [
        {k: v for k, v in (item or {}).items() if v not in (None, "")}
        for item in (data.get("procedures") or [])
    ]
    record = build_record(
        clinic_id,
        patient_id=data["patient_id"],
        dentist_id=data["dentist_id"],
        description=data["description"].strip(),
        procedures=procedures,
        odontogram=data.get("odontogram"),
        appointment_id=data.get("appointment_id"),
        attendance_id=data.get("attendance_id"),
    )
    commit_with_retry()
    return record
