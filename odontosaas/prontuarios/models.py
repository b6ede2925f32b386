from .. import db
from ..utils_dates import isoformat, utcnow


class Record(db.Model):
    """Prontuário clínico (evolução) do paciente."""

    __tablename__ = "records"

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    patient_id = db.Column(db.Integer, db.ForeignKey("patients.id"), nullable=False, index=True)
    dentist_id = db.Column(db.Integer, db.ForeignKey("dentists.id"), nullable=False)
    appointment_id = db.Column(db.Integer, db.ForeignKey("appointments.id"))
    attendance_id = db.Column(db.Integer, db.ForeignKey("attendances.id"))
    description = db.Column(db.Text, nullable=False)
    procedures = db.Column(db.JSON)  # [{code, description, tooth}]
    odontogram = db.Column(db.JSON)  # {dente: status}
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    patient = db.relationship("Patient")
    dentist = db.relationship("Dentist")

    def to_dict(self):
        return {
            "id": self.id,
            "clinicId": self.clinic_id,
            "patientId": self.patient_id,
            "dentistId": self.dentist_id,
            "appointmentId": self.appointment_id,
            "attendanceId": self.attendance_id,
            "description": self.description,
            "procedures": self.procedures or [],
            "odontogram": self.odontogram,
            "patient": self.patient.summary() if self.patient else None,
            "dentist": self.dentist.summary() if self.dentist else None,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
