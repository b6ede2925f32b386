"""Fluxo de atendimento: check-in, início, finalização e cancelamento.

Transições válidas::

    CHECKED_IN -> IN_PROGRESS -> DONE
    CHECKED_IN | IN_PROGRESS -> CANCELED

Qualquer outra transição levanta BusinessRuleError (400). A finalização
grava o prontuário do atendimento na mesma transação.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import and_, or_

from .. import db
from ..agenda.models import Appointment
from ..auth.models import UserRole
from ..catalogo.models import Procedure
from ..dentistas.models import Dentist
from ..dentistas.services import dentist_performs, require_dentist_for_user
from ..errors import BusinessRuleError, ForbiddenError, NotFoundError
from ..pacientes.models import Patient
from ..prontuarios import services as record_services
from ..utils_dates import end_of_day, format_br, start_of_day, utcnow
from ..utils_db import commit_with_retry, get_or_404, transactional
from .models import (
    Attendance,
    AttendanceCid,
    AttendanceProcedure,
    AttendanceStatus,
    ClinicalDocument,
    Odontogram,
)

logger = logging.getLogger("odontosaas.attendance")

NOT_FOUND = "Atendimento não encontrado"


def get_attendance(clinic_id: int, attendance_id: int) -> Attendance:
    return get_or_404(Attendance, attendance_id, clinic_id, NOT_FOUND)


def _get_dentist(clinic_id: int, dentist_id: int) -> Dentist:
    return get_or_404(Dentist, dentist_id, clinic_id, "Dentista não encontrado")


# ---------------------------------------------------------------------------
# Consultas
# ---------------------------------------------------------------------------


def list_attendances(
    clinic_id: int,
    *,
    status: str | None = None,
    patient_id: int | None = None,
    dentist_id: int | None = None,
    day: datetime | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[Attendance]:
    q = Attendance.query.filter(Attendance.clinic_id == clinic_id)
    if status:
        q = q.filter(Attendance.status == status)
    if patient_id is not None:
        q = q.filter(Attendance.patient_id == patient_id)
    if dentist_id is not None:
        q = q.filter(Attendance.dentist_id == dentist_id)

    # Atendimento em andamento aparece em qualquer recorte de data
    if day is not None:
        lo, hi = start_of_day(day), end_of_day(day)
        q = q.filter(
            or_(
                Attendance.arrival_at.between(lo, hi),
                Attendance.started_at.between(lo, hi),
                Attendance.status == AttendanceStatus.IN_PROGRESS,
            )
        )
    elif date_from is not None or date_to is not None:
        arrival, started = [], []
        if date_from is not None:
            arrival.append(Attendance.arrival_at >= date_from)
            started.append(Attendance.started_at >= date_from)
        if date_to is not None:
            arrival.append(Attendance.arrival_at <= end_of_day(date_to))
            started.append(Attendance.started_at <= end_of_day(date_to))
        q = q.filter(
            or_(
                and_(*arrival),
                and_(*started),
                Attendance.status == AttendanceStatus.IN_PROGRESS,
            )
        )
    return q.order_by(Attendance.arrival_at.desc()).all()


def waiting_room(clinic_id: int, dentist_id: int | None = None) -> list[Attendance]:
    q = Attendance.query.filter(
        Attendance.clinic_id == clinic_id, Attendance.status == AttendanceStatus.CHECKED_IN
    )
    if dentist_id is not None:
        q = q.filter(Attendance.dentist_id == dentist_id)
    return q.order_by(Attendance.arrival_at.asc()).all()


# ---------------------------------------------------------------------------
# Transições
# ---------------------------------------------------------------------------


def check_in(clinic_id: int, user, data: dict[str, Any]) -> Attendance:
    patient = db.session.get(Patient, data["patient_id"])
    if patient is None or patient.clinic_id != clinic_id or not patient.is_active:
        raise BusinessRuleError("Paciente não encontrado ou inativo")

    dentist_id = data.get("dentist_id")
    if dentist_id is not None:
        dentist_id = _get_dentist(clinic_id, dentist_id).id

    appointment_id = data.get("appointment_id")
    with transactional():
        if appointment_id is not None:
            appointment = get_or_404(Appointment, appointment_id, clinic_id, "Agendamento não encontrado")
            if dentist_id is None:
                dentist_id = appointment.dentist_id
            active = Attendance.query.filter(
                Attendance.clinic_id == clinic_id,
                Attendance.appointment_id == appointment.id,
                Attendance.status.in_(AttendanceStatus.ACTIVE),
            ).first()
            if active is not None:
                raise BusinessRuleError("Este agendamento já possui um atendimento em andamento")
            # Libera o agendamento de atendimentos antigos (cancelados/finalizados)
            Attendance.query.filter(
                Attendance.clinic_id == clinic_id,
                Attendance.appointment_id == appointment.id,
                Attendance.status.notin_(AttendanceStatus.ACTIVE),
            ).update({Attendance.appointment_id: None}, synchronize_session=False)

        attendance = Attendance()
        attendance.clinic_id = clinic_id
        attendance.patient_id = patient.id
        attendance.appointment_id = appointment_id
        attendance.dentist_id = dentist_id
        attendance.status = AttendanceStatus.CHECKED_IN
        attendance.arrival_at = utcnow()
        attendance.notes = (data.get("notes") or "").strip() or None
        attendance.created_by_id = user.id
        attendance.created_by_role = user.role
        db.session.add(attendance)
    logger.info("Check-in do paciente %s (atendimento %s)", patient.id, attendance.id)
    return attendance


def resolve_start_dentist(attendance: Attendance, user, requested_id: int | None) -> int:
    """Dentista que inicia o atendimento conforme o papel do usuário."""
    if user.role == UserRole.DENTIST:
        own = require_dentist_for_user(user)
        if requested_id is not None and requested_id != own.id:
            raise ForbiddenError("Dentista só pode iniciar atendimentos em seu próprio nome")
        return own.id
    if requested_id is not None:
        return requested_id
    if attendance.dentist_id is None:
        raise BusinessRuleError("Atendimento não possui dentista associado. Informe o dentista.")
    return attendance.dentist_id


def start(attendance: Attendance, dentist_id: int) -> Attendance:
    if attendance.status != AttendanceStatus.CHECKED_IN:
        raise BusinessRuleError("Apenas atendimentos em check-in podem ser iniciados")
    dentist = _get_dentist(attendance.clinic_id, dentist_id)
    attendance.status = AttendanceStatus.IN_PROGRESS
    attendance.dentist_id = dentist.id
    attendance.started_at = utcnow()
    commit_with_retry()
    return attendance


def _record_description(attendance: Attendance) -> str:
    cids = "; ".join(f"{c.cid_code} - {c.description}" for c in attendance.cids)
    procs = "; ".join(
        f"{p.description} (Dente {p.tooth})" if p.tooth else p.description
        for p in attendance.procedures
    )
    return (
        f"Atendimento realizado em {format_br(attendance.arrival_at)}.\n"
        f"CIDs: {cids}\n"
        f"Procedimentos: {procs}"
    )


def finish(attendance: Attendance, user) -> Attendance:
    if attendance.status != AttendanceStatus.IN_PROGRESS:
        raise BusinessRuleError("Apenas atendimentos em andamento podem ser finalizados")
    if not attendance.cids:
        raise BusinessRuleError("É necessário adicionar pelo menos um CID antes de finalizar")
    if not attendance.procedures:
        raise BusinessRuleError("É necessário adicionar pelo menos um procedimento antes de finalizar")
    if attendance.dentist_id is None:
        raise BusinessRuleError("Atendimento deve ter um dentista associado")
    if user.role == UserRole.DENTIST:
        own = require_dentist_for_user(user)
        if own.id != attendance.dentist_id:
            raise ForbiddenError("Você só pode finalizar seus próprios atendimentos")

    with transactional():
        attendance.status = AttendanceStatus.DONE
        attendance.finished_at = utcnow()
        record_services.build_record(
            attendance.clinic_id,
            patient_id=attendance.patient_id,
            dentist_id=attendance.dentist_id,
            appointment_id=attendance.appointment_id,
            attendance_id=attendance.id,
            description=_record_description(attendance),
            procedures=[
                {
                    "code": p.procedure_code or (str(p.procedure_id) if p.procedure_id else "PROC"),
                    "description": p.description,
                    "tooth": p.tooth,
                }
                for p in attendance.procedures
            ],
            odontogram=dict(attendance.odontogram.data or {}) if attendance.odontogram else None,
        )
    logger.info("Atendimento %s finalizado", attendance.id)
    return attendance


def cancel(attendance: Attendance, reason: str | None = None) -> Attendance:
    if attendance.status == AttendanceStatus.DONE:
        raise BusinessRuleError("Não é possível cancelar um atendimento já finalizado")
    if attendance.status == AttendanceStatus.CANCELED:
        raise BusinessRuleError("Atendimento já está cancelado")
    if attendance.status not in AttendanceStatus.ACTIVE:
        raise BusinessRuleError("Atendimento não pode ser cancelado")
    attendance.status = AttendanceStatus.CANCELED
    attendance.cancel_reason = (reason or "").strip() or None
    # Agendamento fica livre para novo check-in
    attendance.appointment_id = None
    commit_with_retry()
    return attendance


# ---------------------------------------------------------------------------
# CIDs, procedimentos, odontograma e documentos
# ---------------------------------------------------------------------------


def _require_clinical(attendance: Attendance, message: str) -> None:
    if attendance.status not in AttendanceStatus.CLINICAL:
        raise BusinessRuleError(message)


def resolve_cid_dentist(attendance: Attendance, user) -> int:
    if user.role == UserRole.DENTIST:
        own = require_dentist_for_user(user)
        if attendance.dentist_id is not None and attendance.dentist_id != own.id:
            raise ForbiddenError("Você não tem permissão para adicionar CIDs neste atendimento")
        return own.id
    if attendance.dentist_id is None:
        raise BusinessRuleError("Atendimento não possui dentista associado")
    return attendance.dentist_id


def add_cid(attendance: Attendance, dentist_id: int, data: dict[str, Any]) -> AttendanceCid:
    _require_clinical(
        attendance, "CID só pode ser adicionado em atendimentos em andamento ou finalizados"
    )
    cid = AttendanceCid()
    cid.cid_code = data["cid_code"].strip().upper()
    cid.description = data["description"].strip()
    cid.observation = (data.get("observation") or "").strip() or None
    cid.created_by_dentist_id = dentist_id
    attendance.cids.append(cid)
    commit_with_retry()
    return cid


def remove_cid(attendance: Attendance, cid_id: int) -> None:
    cid = AttendanceCid.query.filter_by(id=cid_id, attendance_id=attendance.id).first()
    if cid is None:
        raise NotFoundError("CID não encontrado")
    _require_clinical(attendance, "CID só pode ser removido em atendimentos em andamento ou finalizados")
    db.session.delete(cid)
    commit_with_retry()


def resolve_procedure_dentist(attendance: Attendance, user, requested_id: int | None) -> int:
    if user.role == UserRole.DENTIST:
        return require_dentist_for_user(user).id
    dentist_id = requested_id or attendance.dentist_id
    if dentist_id is None:
        raise BusinessRuleError(
            "Dentista não identificado. Este atendimento precisa de um dentista vinculado."
        )
    return _get_dentist(attendance.clinic_id, dentist_id).id


def add_procedure(attendance: Attendance, dentist_id: int, data: dict[str, Any]) -> AttendanceProcedure:
    _require_clinical(
        attendance, "Procedimento só pode ser adicionado em atendimentos em andamento ou finalizados"
    )
    procedure = db.session.get(Procedure, data["procedure_id"])
    if procedure is None or procedure.clinic_id != attendance.clinic_id or not procedure.is_active:
        raise BusinessRuleError("Procedimento não encontrado ou inativo")
    if not dentist_performs(dentist_id, procedure.id):
        raise BusinessRuleError("Procedimento não está vinculado a este dentista")

    item = AttendanceProcedure()
    item.procedure_id = procedure.id
    item.dentist_id = dentist_id
    item.procedure_code = (data.get("procedure_code") or "").strip() or None
    item.description = procedure.name
    item.price = procedure.base_value
    item.tooth = data["tooth"]
    item.faces = list(dict.fromkeys(data["faces"]))
    item.clinical_status = data["clinical_status"]
    item.quantity = data.get("quantity") or 1
    item.observations = (data.get("observations") or "").strip() or None
    attendance.procedures.append(item)
    commit_with_retry()
    return item


def remove_procedure(attendance: Attendance, item_id: int) -> None:
    _require_clinical(
        attendance, "Procedimento só pode ser removido em atendimentos em andamento ou finalizados"
    )
    item = AttendanceProcedure.query.filter_by(id=item_id, attendance_id=attendance.id).first()
    if item is None:
        raise NotFoundError("Procedimento não encontrado neste atendimento")
    db.session.delete(item)
    commit_with_retry()


def update_odontogram(attendance: Attendance, data: dict[str, str]) -> Odontogram:
    _require_clinical(
        attendance, "Odontograma só pode ser atualizado em atendimentos em andamento ou finalizados"
    )
    odontogram = attendance.odontogram
    if odontogram is None:
        odontogram = Odontogram()
        attendance.odontogram = odontogram
    # Novo dict para o SQLAlchemy detectar a mudança na coluna JSON
    odontogram.data = dict(data)
    commit_with_retry()
    return odontogram


def create_document(attendance: Attendance, user, data: dict[str, Any]) -> ClinicalDocument:
    if attendance.status != AttendanceStatus.DONE:
        raise BusinessRuleError("Documentos só podem ser gerados para atendimentos finalizados")
    document = ClinicalDocument()
    document.type = data["type"]
    document.payload = data["payload"]
    document.generated_by = user.id
    attendance.documents.append(document)
    commit_with_retry()
    return document
