"""Pagamentos e resumos financeiros.

Pagamento nunca é alterado nem excluído depois de gravado; correções
entram como novos lançamentos.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from sqlalchemy import func

from .. import db
from ..errors import BusinessRuleError, ValidationError
from ..orcamentos.models import TreatmentPlan, TreatmentPlanStatus
from ..pacientes.services import require_active_patient
from ..utils_api import money_float, to_money
from ..utils_dates import end_of_day, month_range, start_of_day, utcnow
from ..utils_db import transactional
from .models import Payment, PaymentMethod, PaymentTreatmentPlan

logger = logging.getLogger("odontosaas.finance")


def _load_plans(clinic_id: int, plan_ids: list[int], patient_id: int | None) -> list[TreatmentPlan]:
    wanted = list(dict.fromkeys(plan_ids))
    plans = TreatmentPlan.query.filter(
        TreatmentPlan.clinic_id == clinic_id, TreatmentPlan.id.in_(wanted)
    ).all()
    found = {p.id for p in plans}
    missing = [pid for pid in wanted if pid not in found]
    if missing:
        raise BusinessRuleError(f"Orçamentos não encontrados: {', '.join(map(str, missing))}")
    if patient_id is not None:
        foreign = [p.id for p in plans if p.patient_id != patient_id]
        if foreign:
            raise BusinessRuleError("Orçamentos informados não pertencem ao paciente")
    return plans


def create_payment(clinic_id: int, data: dict[str, Any]) -> Payment:
    patient_id = data.get("patient_id")
    if patient_id is not None:
        patient_id = require_active_patient(clinic_id, patient_id).id

    plans = []
    if data.get("treatment_plan_ids"):
        plans = _load_plans(clinic_id, data["treatment_plan_ids"], patient_id)

    amount = data.get("amount")
    if amount is None:
        if not plans:
            raise ValidationError("Dados inválidos: Valor é obrigatório")
        amount = sum((to_money(p.total_amount) for p in plans), to_money(0))
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Dados inválidos: Valor deve ser positivo")

    with transactional():
        payment = Payment()
        payment.clinic_id = clinic_id
        payment.patient_id = patient_id
        payment.amount = amount
        payment.method = data["method"]
        payment.description = (data.get("description") or "").strip() or None
        payment.created_at = utcnow()
        for plan in plans:
            link = PaymentTreatmentPlan()
            link.treatment_plan = plan
            payment.plan_links.append(link)
            if plan.status == TreatmentPlanStatus.OPEN:
                plan.status = TreatmentPlanStatus.APPROVED
        db.session.add(payment)
    logger.info("Pagamento %s registrado (%s %s)", payment.id, payment.method, payment.amount)
    return payment


def list_payments(
    clinic_id: int,
    *,
    patient_id: int | None = None,
    method: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> list[Payment]:
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValidationError("Data inicial deve ser anterior ou igual à data final")
    q = Payment.query.filter(Payment.clinic_id == clinic_id)
    if patient_id is not None:
        q = q.filter(Payment.patient_id == patient_id)
    if method:
        q = q.filter(Payment.method == method)
    if start_date is not None:
        q = q.filter(Payment.created_at >= start_date)
    if end_date is not None:
        q = q.filter(Payment.created_at <= end_of_day(end_date))
    return q.order_by(Payment.created_at.desc(), Payment.id.desc()).all()


def recent_payments(clinic_id: int, limit: int = 5) -> list[Payment]:
    return (
        Payment.query.filter(Payment.clinic_id == clinic_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .limit(limit)
        .all()
    )


def summarize(clinic_id: int, start: datetime, end: datetime) -> dict[str, Any]:
    """Total, quantidade e quebra por forma de pagamento no intervalo."""
    rows = (
        db.session.query(Payment.method, func.coalesce(func.sum(Payment.amount), 0), func.count(Payment.id))
        .filter(Payment.clinic_id == clinic_id, Payment.created_at.between(start, end))
        .group_by(Payment.method)
        .all()
    )
    by_method = {m: (0.0, 0) for m in PaymentMethod.ALL}
    for method, total, count in rows:
        by_method[method] = (money_float(total), int(count))
    return {
        "totalAmount": round(sum(t for t, _ in by_method.values()), 2),
        "totalCount": sum(c for _, c in by_method.values()),
        "byMethod": [
            {"method": m, "total": round(t, 2), "count": c} for m, (t, c) in by_method.items()
        ],
    }


def daily_summary(clinic_id: int, day: date | datetime | None = None) -> dict[str, Any]:
    day = day or utcnow()
    if isinstance(day, datetime):
        day = day.date()
    data = {"date": day.isoformat()}
    data.update(summarize(clinic_id, start_of_day(day), end_of_day(day)))
    return data


def monthly_summary(clinic_id: int, year: int, month: int) -> dict[str, Any]:
    if not 2000 <= year <= 3000:
        raise ValidationError("Ano deve estar entre 2000 e 3000")
    if not 1 <= month <= 12:
        raise ValidationError("Mês deve estar entre 1 e 12")
    now = utcnow()
    if (year, month) > (now.year, now.month):
        raise ValidationError("Não é possível obter resumo de meses futuros")
    start, end = month_range(year, month)
    data: dict[str, Any] = {"year": year, "month": month}
    data.update(summarize(clinic_id, start, end))
    return data
