"""Serviços de dentistas: perfil profissional, vínculos e repasse financeiro."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, or_

from .. import db
from ..auth.models import User, UserRole
from ..catalogo.models import Procedure, Specialty
from ..errors import BusinessRuleError, ForbiddenError, NotFoundError, ValidationError
from ..utils_api import to_money
from ..utils_dates import end_of_day, isoformat
from ..utils_db import commit_with_retry, transactional
from .models import Dentist, DentistProcedure, DentistSpecialty

COMMISSION_GENERAL = "GENERAL"
COMMISSION_PROCEDURE = "PROCEDURE"


def normalize_cro(cro: str) -> str:
    # "CRO-SP   12345" -> "CRO-SP 12345"
    return " ".join(cro.strip().upper().split())


def list_dentists(
    clinic_id: int, *, search: str | None = None, specialty: str | None = None
) -> list[Dentist]:
    q = Dentist.query.join(User, Dentist.user_id == User.id).filter(Dentist.clinic_id == clinic_id)
    if search:
        like = f"%{search.lower()}%"
        q = q.filter(or_(func.lower(User.name).like(like), func.lower(Dentist.cro).like(like)))
    if specialty:
        q = q.filter(func.lower(Dentist.specialty).like(f"%{specialty.lower()}%"))
    return q.order_by(User.name.asc()).all()


def find_by_user(clinic_id: int, user_id: int) -> Dentist | None:
    return Dentist.query.filter_by(clinic_id=clinic_id, user_id=user_id).first()


def require_dentist_for_user(user) -> Dentist:
    dentist = find_by_user(user.clinic_id, user.id)
    if dentist is None:
        raise NotFoundError("Dentista não encontrado para este usuário")
    return dentist


def _cro_taken(clinic_id: int, cro: str, exclude_id: int | None = None) -> bool:
    q = Dentist.query.filter(Dentist.clinic_id == clinic_id, Dentist.cro == cro)
    if exclude_id is not None:
        q = q.filter(Dentist.id != exclude_id)
    return db.session.query(q.exists()).scalar()


def create_dentist(clinic_id: int, data: dict[str, Any]) -> Dentist:
    user = db.session.get(User, data["user_id"])
    if user is None or user.clinic_id != clinic_id:
        raise NotFoundError("Usuário não encontrado")
    if not user.is_active:
        raise BusinessRuleError("Usuário inativo não pode ser cadastrado como dentista")
    if user.role != UserRole.DENTIST:
        raise BusinessRuleError("Usuário deve ter o papel DENTIST")
    if Dentist.query.filter_by(user_id=user.id).first() is not None:
        raise BusinessRuleError("Usuário já está cadastrado como dentista")
    cro = normalize_cro(data["cro"])
    if _cro_taken(clinic_id, cro):
        raise BusinessRuleError("CRO já cadastrado nesta clínica")

    dentist = Dentist()
    dentist.clinic_id = clinic_id
    dentist.user_id = user.id
    dentist.cro = cro
    _apply_profile(dentist, data)
    db.session.add(dentist)
    commit_with_retry()
    return dentist


def _apply_profile(dentist: Dentist, data: dict[str, Any]) -> None:
    if "specialty" in data:
        dentist.specialty = (data["specialty"] or "").strip() or None
    if "working_hours" in data:
        dentist.working_hours = data["working_hours"]
    if "bank_info" in data:
        dentist.bank_info = data["bank_info"]
    if "commission" in data:
        value = data["commission"]
        dentist.commission = to_money(value) if value is not None else None


def update_dentist(dentist: Dentist, data: dict[str, Any]) -> Dentist:
    if data.get("cro"):
        cro = normalize_cro(data["cro"])
        if _cro_taken(dentist.clinic_id, cro, exclude_id=dentist.id):
            raise BusinessRuleError("CRO já cadastrado nesta clínica")
        dentist.cro = cro
    _apply_profile(dentist, data)
    commit_with_retry()
    return dentist


def delete_dentist(dentist: Dentist) -> None:
    from ..agenda.models import Appointment
    from ..atendimentos.models import Attendance

    in_use = (
        Appointment.query.filter_by(dentist_id=dentist.id).first() is not None
        or Attendance.query.filter_by(dentist_id=dentist.id).first() is not None
    )
    if in_use:
        raise BusinessRuleError("Dentista possui agendamentos ou atendimentos vinculados")
    with transactional():
        db.session.delete(dentist)


def replace_procedures(dentist: Dentist, procedure_ids: list[int]) -> Dentist:
    """Substitui o conjunto de procedimentos realizados pelo dentista."""
    wanted = list(dict.fromkeys(procedure_ids))
    procs = []
    if wanted:
        procs = Procedure.query.filter(
            Procedure.clinic_id == dentist.clinic_id, Procedure.id.in_(wanted)
        ).all()
        found = {p.id: p for p in procs}
        missing = [pid for pid in wanted if pid not in found]
        if missing:
            raise ValidationError(f"Procedimentos não encontrados: {', '.join(map(str, missing))}")
        inactive = [p.name for p in procs if not p.is_active]
        if inactive:
            raise ValidationError(f"Procedimentos inativos: {', '.join(inactive)}")
    with transactional():
        dentist.procedure_links.clear()
        db.session.flush()
        for pid in wanted:
            link = DentistProcedure()
            link.procedure_id = pid
            dentist.procedure_links.append(link)
    return dentist


def replace_specialties(dentist: Dentist, specialty_ids: list[int]) -> Dentist:
    wanted = list(dict.fromkeys(specialty_ids))
    if wanted:
        found = {s.id for s in Specialty.query.filter(Specialty.id.in_(wanted)).all()}
        missing = [sid for sid in wanted if sid not in found]
        if missing:
            raise ValidationError(f"Especialidades não encontradas: {', '.join(map(str, missing))}")
    with transactional():
        dentist.specialty_links.clear()
        db.session.flush()
        for sid in wanted:
            link = DentistSpecialty()
            link.specialty_id = sid
            dentist.specialty_links.append(link)
    return dentist


def dentist_performs(dentist_id: int, procedure_id: int) -> bool:
    return (
        DentistProcedure.query.filter_by(dentist_id=dentist_id, procedure_id=procedure_id).first()
        is not None
    )


def check_financial_access(user, dentist: Dentist) -> None:
    if user.role in (UserRole.OWNER, UserRole.ADMIN):
        return
    if dentist.user_id != user.id:
        raise ForbiddenError("Acesso negado")


def _commission(value: float, procedure: Procedure | None, general: float | None) -> tuple[float, str]:
    if procedure is not None and procedure.commission_percentage:
        return value * float(procedure.commission_percentage) / 100, COMMISSION_PROCEDURE
    if general:
        return value * general / 100, COMMISSION_GENERAL
    return 0.0, COMMISSION_GENERAL


def dentist_financial(
    dentist: Dentist,
    *,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    patient_id: int | None = None,
    procedure_id: int | None = None,
    commission_type: str | None = None,
) -> dict[str, Any]:
    """Produção e comissões do dentista.

    Fontes: pagamentos vinculados a orçamentos do dentista (sempre PAGO) e
    procedimentos de atendimentos finalizados (PAGO quando existe
    pagamento de orçamento aprovado do mesmo paciente, senão PENDENTE).
    """
    from ..atendimentos.models import Attendance, AttendanceStatus
    from ..financeiro.models import Payment, PaymentTreatmentPlan
    from ..orcamentos.models import TreatmentPlan, TreatmentPlanItem, TreatmentPlanStatus

    general = float(dentist.commission) if dentist.commission is not None else None
    date_to = end_of_day(date_to) if date_to is not None else None
    transactions: list[dict[str, Any]] = []

    pq = (
        Payment.query.join(PaymentTreatmentPlan, PaymentTreatmentPlan.payment_id == Payment.id)
        .join(TreatmentPlan, TreatmentPlan.id == PaymentTreatmentPlan.treatment_plan_id)
        .filter(Payment.clinic_id == dentist.clinic_id, TreatmentPlan.dentist_id == dentist.id)
    )
    if patient_id:
        pq = pq.filter(Payment.patient_id == patient_id)
    if date_from:
        pq = pq.filter(Payment.created_at >= date_from)
    if date_to:
        pq = pq.filter(Payment.created_at <= date_to)
    if procedure_id:
        pq = pq.filter(TreatmentPlan.items.any(TreatmentPlanItem.procedure_id == procedure_id))
    for payment in pq.distinct().all():
        for link in payment.plan_links:
            plan = link.treatment_plan
            if plan.dentist_id != dentist.id:
                continue
            for item in plan.items:
                if procedure_id and item.procedure_id != procedure_id:
                    continue
                gross = float(item.value) * item.quantity
                commission, ctype = _commission(gross, item.procedure, general)
                if commission_type and ctype != commission_type:
                    continue
                transactions.append(
                    {
                        "id": f"{payment.id}-{item.id}",
                        "date": payment.created_at,
                        "patientId": payment.patient_id or plan.patient_id,
                        "patientName": payment.patient.name if payment.patient else "Paciente não informado",
                        "procedureName": item.description,
                        "grossValue": gross,
                        "commission": commission,
                        "commissionType": ctype,
                        "status": "PAGO",
                        "source": "TREATMENT_PLAN",
                        "sourceId": plan.id,
                    }
                )

    aq = Attendance.query.filter(
        Attendance.clinic_id == dentist.clinic_id,
        Attendance.dentist_id == dentist.id,
        Attendance.status == AttendanceStatus.DONE,
    )
    if patient_id:
        aq = aq.filter(Attendance.patient_id == patient_id)
    if date_from:
        aq = aq.filter(Attendance.finished_at >= date_from)
    if date_to:
        aq = aq.filter(Attendance.finished_at <= date_to)
    paid_patients: dict[int, bool] = {}
    for attendance in aq.all():
        for ap in attendance.procedures:
            if ap.dentist_id != dentist.id:
                continue
            if procedure_id and ap.procedure_id != procedure_id:
                continue
            unit = ap.price if ap.price is not None else (ap.procedure.base_value if ap.procedure else 0)
            gross = float(unit or 0) * (ap.quantity or 1)
            if gross == 0:
                continue
            commission, ctype = _commission(gross, ap.procedure, general)
            if commission_type and ctype != commission_type:
                continue
            if attendance.patient_id not in paid_patients:
                paid_patients[attendance.patient_id] = (
                    db.session.query(PaymentTreatmentPlan.id)
                    .join(TreatmentPlan, TreatmentPlan.id == PaymentTreatmentPlan.treatment_plan_id)
                    .filter(
                        TreatmentPlan.dentist_id == dentist.id,
                        TreatmentPlan.patient_id == attendance.patient_id,
                        TreatmentPlan.status == TreatmentPlanStatus.APPROVED,
                    )
                    .first()
                    is not None
                )
            transactions.append(
                {
                    "id": f"{attendance.id}-{ap.id}",
                    "date": attendance.finished_at or attendance.arrival_at,
                    "patientId": attendance.patient_id,
                    "patientName": attendance.patient.name,
                    "procedureName": ap.description,
                    "grossValue": gross,
                    "commission": commission,
                    "commissionType": ctype,
                    "status": "PAGO" if paid_patients[attendance.patient_id] else "PENDENTE",
                    "source": "ATTENDANCE",
                    "sourceId": attendance.id,
                }
            )

    transactions.sort(key=lambda t: t["date"], reverse=True)
    total_received = sum(t["commission"] for t in transactions if t["status"] == "PAGO")
    total_pending = sum(t["commission"] for t in transactions if t["status"] == "PENDENTE")
    for t in transactions:
        t["date"] = isoformat(t["date"])
    return {
        "commissionPercentage": general,
        "grossProduction": sum(t["grossValue"] for t in transactions),
        "totalReceived": total_received,
        "totalPending": total_pending,
        "netReceived": total_received,
        "transactions": transactions,
    }


def require_active_dentist(clinic_id: int, dentist_id: int) -> Dentist:
    """Dentista da clínica com usuário ativo (agenda e orçamentos)."""
    dentist = db.session.get(Dentist, dentist_id) if dentist_id is not None else None
    if dentist is None or dentist.clinic_id != clinic_id:
        raise NotFoundError("Dentista não encontrado")
    if dentist.user is None or not dentist.user.is_active:
        raise BusinessRuleError("Dentista inativo")
    return dentist
