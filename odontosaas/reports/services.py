"""Agregados dos relatórios (agenda, financeiro, estoque, pacientes, usuários).

Todos recebem o intervalo [start, end] já resolvido pela rota; o padrão
é o mês corrente.
"""

from __future__ import annotations

import math
from collections import Counter
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import func

from .. import db
from ..agenda.models import Appointment, AppointmentStatus
from ..auth.models import User, UserRole
from ..estoque.models import InventoryItem, InventoryMovement, MovementType
from ..financeiro.models import Payment, PaymentMethod
from ..pacientes.models import Patient
from ..utils_api import money_float
from ..utils_dates import current_month_range, isoformat, last_months, shift_month, utcnow


def _count(q) -> int:
    return q.order_by(None).count()


def appointments_report(
    clinic_id: int,
    start: datetime,
    end: datetime,
    *,
    dentist_id: int | None = None,
    status: str | None = None,
) -> dict[str, Any]:
    q = Appointment.query.filter(
        Appointment.clinic_id == clinic_id, Appointment.date.between(start, end)
    )
    if dentist_id is not None:
        q = q.filter(Appointment.dentist_id == dentist_id)
    if status:
        q = q.filter(Appointment.status == status)
    appointments = q.order_by(Appointment.date.desc()).all()

    by_status = {s: 0 for s in AppointmentStatus.ALL}
    dentists: dict[int, dict[str, Any]] = {}
    weekdays: Counter = Counter()
    hours: Counter = Counter()
    for appt in appointments:
        by_status[appt.status] = by_status.get(appt.status, 0) + 1
        entry = dentists.setdefault(
            appt.dentist_id,
            {
                "dentistId": appt.dentist_id,
                "dentistName": appt.dentist.name if appt.dentist else "Dentista não encontrado",
                "total": 0,
                "done": 0,
                "canceled": 0,
                "noShow": 0,
            },
        )
        entry["total"] += 1
        if appt.status == AppointmentStatus.DONE:
            entry["done"] += 1
        elif appt.status == AppointmentStatus.CANCELED:
            entry["canceled"] += 1
        elif appt.status == AppointmentStatus.NO_SHOW:
            entry["noShow"] += 1
        # 0 = domingo
        weekdays[(appt.date.weekday() + 1) % 7] += 1
        hours[appt.date.hour] += 1

    finalized = sum(by_status[s] for s in AppointmentStatus.COMPLETED)
    rate = by_status[AppointmentStatus.DONE] / finalized * 100 if finalized else 0

    now = utcnow()
    this_start, this_end = current_month_range(now)
    last_start, last_end = current_month_range(shift_month(now, -1))
    scope = Appointment.query.filter(Appointment.clinic_id == clinic_id)
    if dentist_id is not None:
        scope = scope.filter(Appointment.dentist_id == dentist_id)
    upcoming = (
        scope.filter(
            Appointment.date.between(now, now + timedelta(days=7)),
            Appointment.status.in_(AppointmentStatus.ACTIVE),
        )
        .order_by(Appointment.date.asc())
        .limit(10)
        .all()
    )

    return {
        "total": len(appointments),
        "byStatus": by_status,
        "byDentist": sorted(dentists.values(), key=lambda d: d["total"], reverse=True),
        "attendanceRate": round(rate, 2),
        "busiestDays": [
            {"dayOfWeek": day, "count": weekdays.get(day, 0)}
            for day in sorted(range(7), key=lambda d: -weekdays.get(d, 0))
        ],
        "busiestHours": [{"hour": h, "count": c} for h, c in hours.most_common()],
        "thisMonth": _count(scope.filter(Appointment.date.between(this_start, this_end))),
        "lastMonth": _count(scope.filter(Appointment.date.between(last_start, last_end))),
        "upcoming": [
            {
                "id": a.id,
                "date": isoformat(a.date),
                "status": a.status,
                "procedure": a.procedure,
                "patientName": a.patient.name if a.patient else "Paciente não encontrado",
                "dentistName": a.dentist.name if a.dentist else "Dentista não encontrado",
            }
            for a in upcoming
        ],
    }


def finance_report(
    clinic_id: int, start: datetime, end: datetime, *, method: str | None = None
) -> dict[str, Any]:
    q = Payment.query.filter(Payment.clinic_id == clinic_id, Payment.created_at.between(start, end))
    if method:
        q = q.filter(Payment.method == method)
    payments = q.order_by(Payment.created_at.desc()).all()

    total = sum(money_float(p.amount) for p in payments)
    by_method = {m: 0.0 for m in PaymentMethod.ALL}
    patients: dict[int, dict[str, Any]] = {}
    for p in payments:
        by_method[p.method] = by_method.get(p.method, 0.0) + money_float(p.amount)
        if p.patient_id and p.patient:
            entry = patients.setdefault(
                p.patient_id,
                {"patientId": p.patient_id, "patientName": p.patient.name, "total": 0.0, "count": 0},
            )
            entry["total"] += money_float(p.amount)
            entry["count"] += 1

    by_month = []
    for m_start, m_end in last_months(6):
        amount, count = (
            db.session.query(func.coalesce(func.sum(Payment.amount), 0), func.count(Payment.id))
            .filter(Payment.clinic_id == clinic_id, Payment.created_at.between(m_start, m_end))
            .one()
        )
        by_month.append(
            {"month": m_start.strftime("%Y-%m"), "total": money_float(amount), "count": int(count)}
        )

    days = max(1, math.ceil((end - start).total_seconds() / 86400))
    top = sorted(patients.values(), key=lambda e: e["total"], reverse=True)[:5]
    for entry in top:
        entry["total"] = round(entry["total"], 2)
    return {
        "totalReceived": round(total, 2),
        "paymentCount": len(payments),
        "byMethod": {m: round(v, 2) for m, v in by_method.items()},
        "byMonth": by_month,
        "dailyAverage": round(total / days, 2),
        "topPatients": top,
    }


def inventory_report(clinic_id: int, start: datetime, end: datetime) -> dict[str, Any]:
    items = InventoryItem.query.filter(InventoryItem.clinic_id == clinic_id)
    active = items.filter(InventoryItem.is_active.is_(True))
    low = (
        active.filter(InventoryItem.low_stock_clause())
        .order_by(InventoryItem.current_quantity.asc(), InventoryItem.name.asc())
        .all()
    )

    def _moved(kind: str) -> int:
        total = (
            db.session.query(func.coalesce(func.sum(InventoryMovement.quantity), 0))
            .filter(
                InventoryMovement.clinic_id == clinic_id,
                InventoryMovement.type == kind,
                InventoryMovement.created_at.between(start, end),
            )
            .scalar()
        )
        return int(total or 0)

    total_items = _count(items)
    active_items = _count(active)
    return {
        "totalItems": total_items,
        "activeItems": active_items,
        "inactiveItems": total_items - active_items,
        "outOfStock": _count(active.filter(InventoryItem.current_quantity == 0)),
        "lowStock": len(low),
        "lowStockItems": [i.to_dict() for i in low],
        "movementsIn": _moved(MovementType.IN),
        "movementsOut": _moved(MovementType.OUT),
    }


def patients_report(
    clinic_id: int, start: datetime, end: datetime, *, is_active: bool | None = None
) -> dict[str, Any]:
    base = Patient.query.filter(Patient.clinic_id == clinic_id)
    now = utcnow()
    this_start, this_end = current_month_range(now)
    last_start, last_end = current_month_range(shift_month(now, -1))
    total = _count(base)
    active = _count(base.filter(Patient.is_active.is_(True)))

    listing = base.filter(Patient.created_at.between(start, end))
    if is_active is not None:
        listing = listing.filter(Patient.is_active.is_(is_active))

    return {
        "total": total,
        "active": active,
        "inactive": total - active,
        "newThisMonth": _count(base.filter(Patient.created_at.between(this_start, this_end))),
        "newLastMonth": _count(base.filter(Patient.created_at.between(last_start, last_end))),
        "byMonth": [
            {
                "month": m_start.strftime("%Y-%m"),
                "count": _count(base.filter(Patient.created_at.between(m_start, m_end))),
            }
            for m_start, m_end in last_months(6)
        ],
        "patients": [p.to_dict() for p in listing.order_by(Patient.created_at.desc()).all()],
    }


def users_report(
    clinic_id: int, *, role: str | None = None, is_active: bool | None = None
) -> dict[str, Any]:
    base = User.query.filter(User.clinic_id == clinic_id)
    total = _count(base)
    active = _count(base.filter(User.is_active.is_(True)))
    by_role = {r: 0 for r in UserRole.ALL}
    rows = (
        db.session.query(User.role, func.count(User.id))
        .filter(User.clinic_id == clinic_id)
        .group_by(User.role)
        .all()
    )
    for r, count in rows:
        by_role[r] = int(count)

    listing = base
    if role:
        listing = listing.filter(User.role == role)
    if is_active is not None:
        listing = listing.filter(User.is_active.is_(is_active))
    return {
        "total": total,
        "active": active,
        "inactive": total - active,
        "byRole": by_role,
        "users": [u.to_dict() for u in listing.order_by(User.name.asc()).all()],
    }
