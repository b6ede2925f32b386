"""Pagamentos: registro imutável de valores recebidos."""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.orm import object_session

from .. import db
from ..errors import BusinessRuleError
from ..utils_api import money_float
from ..utils_dates import isoformat, utcnow


class PaymentMethod:
    CASH = "CASH"
    PIX = "PIX"
    CARD = "CARD"

    ALL = (CASH, PIX, CARD)


class Payment(db.Model):
    __tablename__ = "payments"
    __table_args__ = (db.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),)

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    patient_id = db.Column(db.Integer, db.ForeignKey("patients.id"), index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    method = db.Column(db.String(10), nullable=False)
    description = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    patient = db.relationship("Patient")
    plan_links = db.relationship("PaymentTreatmentPlan", backref="payment", cascade="all")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "clinicId": self.clinic_id,
            "patientId": self.patient_id,
            "amount": money_float(self.amount),
            "method": self.method,
            "description": self.description,
            "patient": self.patient.summary() if self.patient else None,
            "treatmentPlanIds": [link.treatment_plan_id for link in self.plan_links],
            "createdAt": isoformat(self.created_at),
        }


class PaymentTreatmentPlan(db.Model):
    __tablename__ = "payment_treatment_plans"
    __table_args__ = (
        db.UniqueConstraint("payment_id", "treatment_plan_id", name="uq_payment_treatment_plan"),
    )

    id = db.Column(db.Integer, primary_key=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments.id"), nullable=False, index=True)
    treatment_plan_id = db.Column(
        db.Integer, db.ForeignKey("treatment_plans.id"), nullable=False, index=True
    )

    treatment_plan = db.relationship("TreatmentPlan")


@event.listens_for(Payment, "before_update")
def _payment_before_update(mapper, connection, target):
    # Só colunas contam; a coleção de vínculos marca o objeto como dirty
    if object_session(target).is_modified(target, include_collections=False):
        raise BusinessRuleError("Pagamentos não podem ser alterados")


@event.listens_for(Payment, "before_delete")
def _payment_before_delete(mapper, connection, target):
    raise BusinessRuleError("Pagamentos não podem ser excluídos")
