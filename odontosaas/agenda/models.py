"""Modelos da Agenda (agendamentos por dentista)."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from .. import db
from ..utils_dates import isoformat, utcnow


class AppointmentStatus:
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    CANCELED = "CANCELED"
    RESCHEDULED = "RESCHEDULED"
    NO_SHOW = "NO_SHOW"
    DONE = "DONE"

    ALL = (SCHEDULED, CONFIRMED, CANCELED, RESCHEDULED, NO_SHOW, DONE)
    ACTIVE = (SCHEDULED, CONFIRMED)
    COMPLETED = (DONE, CANCELED, NO_SHOW)

    LABELS = {
        SCHEDULED: "Agendado",
        CONFIRMED: "Confirmado",
        CANCELED: "Cancelado",
        RESCHEDULED: "Reagendado",
        NO_SHOW: "Não Compareceu",
        DONE: "Concluído",
    }


class Appointment(db.Model):
    __tablename__ = "appointments"

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    dentist_id = db.Column(db.Integer, db.ForeignKey("dentists.id"), nullable=False, index=True)
    patient_id = db.Column(db.Integer, db.ForeignKey("patients.id"), nullable=False, index=True)
    date = db.Column(db.DateTime, nullable=False, index=True)
    duration_minutes = db.Column(db.Integer, nullable=False, default=30)
    status = db.Column(db.String(20), nullable=False, default=AppointmentStatus.SCHEDULED)
    procedure_id = db.Column(db.Integer, db.ForeignKey("procedures.id"))
    procedure = db.Column(db.String(200))
    # Cópia de nome/valor/comissão no momento do agendamento
    procedure_snapshot = db.Column(db.JSON)
    notes = db.Column(db.String(1000))
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    dentist = db.relationship("Dentist")
    patient = db.relationship("Patient")

    @property
    def end(self):
        return self.date + timedelta(minutes=self.duration_minutes or 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "clinicId": self.clinic_id,
            "dentistId": self.dentist_id,
            "patientId": self.patient_id,
            "date": isoformat(self.date),
            "end": isoformat(self.end),
            "durationMinutes": self.duration_minutes,
            "status": self.status,
            "statusLabel": AppointmentStatus.LABELS.get(self.status, self.status),
            "procedureId": self.procedure_id,
            "procedure": self.procedure,
            "procedureSnapshot": self.procedure_snapshot,
            "notes": self.notes,
            "dentist": self.dentist.summary() if self.dentist else None,
            "patient": self.patient.summary() if self.patient else None,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
