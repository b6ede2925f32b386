"""Métricas do painel inicial."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func

from .. import db
from ..agenda.models import Appointment, AppointmentStatus
from ..financeiro.models import Payment
from ..orcamentos.models import TreatmentPlan, TreatmentPlanStatus
from ..pacientes.models import Patient
from ..utils_api import money_float
from ..utils_dates import (
    current_month_range,
    end_of_day,
    last_months,
    shift_month,
    start_of_day,
    utcnow,
)

# Variação (%) abaixo da qual a receita é considerada estável
TREND_THRESHOLD = 5


def percentage_change(current: float, previous: float) -> float:
    if previous > 0:
        return round((current - previous) / previous * 100, 2)
    return 100.0 if current > 0 else 0.0


def trend(change: float) -> str:
    if change > TREND_THRESHOLD:
        return "up"
    if change < -TREND_THRESHOLD:
        return "down"
    return "stable"


def _revenue(clinic_id: int, start, end) -> float:
    total = (
        db.session.query(func.coalesce(func.sum(Payment.amount), 0))
        .filter(Payment.clinic_id == clinic_id, Payment.created_at.between(start, end))
        .scalar()
    )
    return money_float(total)


def _appointments(clinic_id: int, start, end, status: str | None = None) -> int:
    q = Appointment.query.filter(
        Appointment.clinic_id == clinic_id, Appointment.date.between(start, end)
    )
    if status:
        q = q.filter(Appointment.status == status)
    return q.count()


def _new_patients(clinic_id: int, start, end) -> int:
    return Patient.query.filter(
        Patient.clinic_id == clinic_id, Patient.created_at.between(start, end)
    ).count()


def dashboard_data(clinic_id: int) -> dict[str, Any]:
    now = utcnow()
    cur_start, cur_end = current_month_range(now)
    prev_start, prev_end = current_month_range(shift_month(now, -1))
    today_start, today_end = start_of_day(now), end_of_day(now)

    patients_cur = _new_patients(clinic_id, cur_start, cur_end)
    patients_prev = _new_patients(clinic_id, prev_start, prev_end)
    patients_change = percentage_change(patients_cur, patients_prev)

    today_total = _appointments(clinic_id, today_start, today_end)
    today_done = _appointments(clinic_id, today_start, today_end, AppointmentStatus.DONE)

    revenue_cur = _revenue(clinic_id, cur_start, cur_end)
    revenue_prev = _revenue(clinic_id, prev_start, prev_end)
    revenue_change = percentage_change(revenue_cur, revenue_prev)

    open_count, open_total = (
        db.session.query(func.count(TreatmentPlan.id), func.coalesce(func.sum(TreatmentPlan.total_amount), 0))
        .filter(TreatmentPlan.clinic_id == clinic_id, TreatmentPlan.status == TreatmentPlanStatus.OPEN)
        .one()
    )

    performance = []
    for m_start, m_end in last_months(6, now):
        performance.append(
            {
                "month": m_start.strftime("%Y-%m"),
                "revenue": _revenue(clinic_id, m_start, m_end),
                "appointments": _appointments(clinic_id, m_start, m_end),
                "isCurrentMonth": m_start == cur_start,
            }
        )

    return {
        "newPatients": {
            "current": patients_cur,
            "previous": patients_prev,
            "percentageChange": patients_change,
            "trend": trend(patients_change),
        },
        "todayAppointments": {
            "total": today_total,
            "completed": today_done,
            "pending": today_total - today_done,
        },
        "monthlyRevenue": {
            "current": revenue_cur,
            "previous": revenue_prev,
            "percentageChange": revenue_change,
            "trend": trend(revenue_change),
        },
        "openTreatmentPlans": {"count": int(open_count), "totalAmount": money_float(open_total)},
        "monthlyPerformance": performance,
    }
