"""Modelos do fluxo de atendimento (check-in -> em atendimento -> finalizado)."""

from __future__ import annotations

from typing import Any

from .. import db
from ..utils_api import money_float
from ..utils_dates import isoformat, utcnow


class AttendanceStatus:
    CHECKED_IN = "CHECKED_IN"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    CANCELED = "CANCELED"
    NO_SHOW = "NO_SHOW"

    ALL = (CHECKED_IN, IN_PROGRESS, DONE, CANCELED, NO_SHOW)
    ACTIVE = (CHECKED_IN, IN_PROGRESS)
    # Estados que aceitam CID, procedimentos e odontograma
    CLINICAL = (IN_PROGRESS, DONE)


class DocumentType:
    ATESTADO = "atestado"
    PRESCRICAO = "prescricao"
    EXAME = "exame"
    ENCAMINHAMENTO = "encaminhamento"

    ALL = (ATESTADO, PRESCRICAO, EXAME, ENCAMINHAMENTO)


class Attendance(db.Model):
    __tablename__ = "attendances"

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey("appointments.id"), index=True)
    patient_id = db.Column(db.Integer, db.ForeignKey("patients.id"), nullable=False, index=True)
    dentist_id = db.Column(db.Integer, db.ForeignKey("dentists.id"), index=True)
    status = db.Column(db.String(20), nullable=False, default=AttendanceStatus.CHECKED_IN, index=True)
    arrival_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    started_at = db.Column(db.DateTime)
    finished_at = db.Column(db.DateTime)
    notes = db.Column(db.String(1000))
    cancel_reason = db.Column(db.String(500))
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_by_role = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    patient = db.relationship("Patient")
    dentist = db.relationship("Dentist")
    appointment = db.relationship("Appointment")
    cids = db.relationship(
        "AttendanceCid",
        backref="attendance",
        cascade="all, delete-orphan",
        order_by="AttendanceCid.id",
    )
    procedures = db.relationship(
        "AttendanceProcedure",
        backref="attendance",
        cascade="all, delete-orphan",
        order_by="AttendanceProcedure.id",
    )
    odontogram = db.relationship(
        "Odontogram", backref="attendance", uselist=False, cascade="all, delete-orphan"
    )
    documents = db.relationship(
        "ClinicalDocument",
        backref="attendance",
        cascade="all, delete-orphan",
        order_by="ClinicalDocument.generated_at.desc()",
    )

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "clinicId": self.clinic_id,
            "appointmentId": self.appointment_id,
            "patientId": self.patient_id,
            "dentistId": self.dentist_id,
            "status": self.status,
            "arrivalAt": isoformat(self.arrival_at),
            "startedAt": isoformat(self.started_at),
            "finishedAt": isoformat(self.finished_at),
            "notes": self.notes,
            "cancelReason": self.cancel_reason,
            "createdById": self.created_by_id,
            "createdByRole": self.created_by_role,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
            "patient": self.patient.summary() if self.patient else None,
            "dentist": self.dentist.summary() if self.dentist else None,
            "appointment": {
                "id": self.appointment.id,
                "date": isoformat(self.appointment.date),
                "status": self.appointment.status,
            }
            if self.appointment
            else None,
        }

    def to_dict(self) -> dict[str, Any]:
        data = self.summary()
        data.update(
            {
                "cids": [c.to_dict() for c in self.cids],
                "procedures": [p.to_dict() for p in self.procedures],
                "odontogram": {"data": self.odontogram.data or {}} if self.odontogram else None,
                "documents": [d.to_dict() for d in self.documents],
            }
        )
        return data


class AttendanceCid(db.Model):
    __tablename__ = "attendance_cids"

    id = db.Column(db.Integer, primary_key=True)
    attendance_id = db.Column(
        db.Integer, db.ForeignKey("attendances.id"), nullable=False, index=True
    )
    cid_code = db.Column(db.String(10), nullable=False)
    description = db.Column(db.String(255), nullable=False)
    observation = db.Column(db.String(500))
    created_by_dentist_id = db.Column(db.Integer, db.ForeignKey("dentists.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "cidCode": self.cid_code,
            "description": self.description,
            "observation": self.observation,
            "createdByDentistId": self.created_by_dentist_id,
            "createdAt": isoformat(self.created_at),
        }


class AttendanceProcedure(db.Model):
    __tablename__ = "attendance_procedures"

    id = db.Column(db.Integer, primary_key=True)
    attendance_id = db.Column(
        db.Integer, db.ForeignKey("attendances.id"), nullable=False, index=True
    )
    procedure_id = db.Column(db.Integer, db.ForeignKey("procedures.id"))
    dentist_id = db.Column(db.Integer, db.ForeignKey("dentists.id"))
    procedure_code = db.Column(db.String(50))
    description = db.Column(db.String(200), nullable=False)
    tooth = db.Column(db.String(2))
    faces = db.Column(db.JSON)
    clinical_status = db.Column(db.String(20))
    quantity = db.Column(db.Integer, nullable=False, default=1)
    price = db.Column(db.Numeric(12, 2))
    observations = db.Column(db.String(1000))
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    procedure = db.relationship("Procedure")
    dentist = db.relationship("Dentist")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "procedureId": self.procedure_id,
            "procedureCode": self.procedure_code,
            "description": self.description,
            "tooth": self.tooth,
            "faces": self.faces or [],
            "clinicalStatus": self.clinical_status,
            "quantity": self.quantity,
            "price": money_float(self.price) if self.price is not None else None,
            "dentistId": self.dentist_id,
            "observations": self.observations,
            "procedure": {
                "id": self.procedure.id,
                "name": self.procedure.name,
                "baseValue": money_float(self.procedure.base_value),
            }
            if self.procedure
            else None,
            "dentist": self.dentist.summary() if self.dentist else None,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


class Odontogram(db.Model):
    __tablename__ = "odontograms"

    id = db.Column(db.Integer, primary_key=True)
    attendance_id = db.Column(
        db.Integer, db.ForeignKey("attendances.id"), nullable=False, unique=True
    )
    # {"11": "CARIE", "21": "RESTAURADO", ...}
    data = db.Column(db.JSON, nullable=False, default=dict)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


class ClinicalDocument(db.Model):
    __tablename__ = "clinical_documents"

    id = db.Column(db.Integer, primary_key=True)
    attendance_id = db.Column(
        db.Integer, db.ForeignKey("attendances.id"), nullable=False, index=True
    )
    type = db.Column(db.String(20), nullable=False)
    payload = db.Column(db.JSON, nullable=False, default=dict)
    generated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    generated_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "attendanceId": self.attendance_id,
            "type": self.type,
            "payload": self.payload or {},
            "generatedBy": self.generated_by,
            "generatedAt": isoformat(self.generated_at),
        }
