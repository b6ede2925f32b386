from __future__ import annotations

from typing import Any

from .. import db
from ..utils_api import money_float
from ..utils_dates import isoformat, utcnow


class TreatmentPlanStatus:
    OPEN = "OPEN"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    ALL = (OPEN, APPROVED, REJECTED)
    LABELS = {OPEN: "em aberto", APPROVED: "aprovado", REJECTED: "rejeitado"}


class TreatmentPlan(db.Model):
    __tablename__ = "treatment_plans"

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    patient_id = db.Column(db.Integer, db.ForeignKey("patients.id"), nullable=False, index=True)
    dentist_id = db.Column(db.Integer, db.ForeignKey("dentists.id"), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default=TreatmentPlanStatus.OPEN, index=True)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    notes = db.Column(db.String(2000))
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    patient = db.relationship("Patient")
    dentist = db.relationship("Dentist")
    items = db.relationship(
        "TreatmentPlanItem",
        backref="plan",
        cascade="all, delete-orphan",
        order_by="TreatmentPlanItem.id",
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "clinicId": self.clinic_id,
            "patientId": self.patient_id,
            "dentistId": self.dentist_id,
            "status": self.status,
            "totalAmount": money_float(self.total_amount),
            "notes": self.notes,
            "items": [i.to_dict() for i in self.items],
            "patient": self.patient.summary() if self.patient else None,
            "dentist": self.dentist.summary() if self.dentist else None,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


class TreatmentPlanItem(db.Model):
    __tablename__ = "treatment_plan_items"
    __table_args__ = (
        db.CheckConstraint("value > 0", name="ck_plan_item_value_positive"),
        db.CheckConstraint("quantity >= 1", name="ck_plan_item_quantity_positive"),
    )

    id = db.Column(db.Integer, primary_key=True)
    plan_id = db.Column(db.Integer, db.ForeignKey("treatment_plans.id"), nullable=False, index=True)
    procedure_id = db.Column(db.Integer, db.ForeignKey("procedures.id"))
    description = db.Column(db.String(200), nullable=False)
    tooth = db.Column(db.String(10))
    value = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)

    procedure = db.relationship("Procedure")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "planId": self.plan_id,
            "procedureId": self.procedure_id,
            "description": self.description,
            "tooth": self.tooth,
            "value": money_float(self.value),
            "quantity": self.quantity,
        }
