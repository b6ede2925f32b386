from flask_wtf import FlaskForm
from wtforms import IntegerField, StringField, TextAreaField
from wtforms.validators import AnyOf, InputRequired, Length, NumberRange, Optional

from ..utils_api import ISODateTimeField
from .models import AppointmentStatus

STATUS_MESSAGE = "Status deve ser SCHEDULED, CONFIRMED, CANCELED, RESCHEDULED, NO_SHOW ou DONE"
DURATION_MESSAGE = "Duração deve estar entre 15 e 480 minutos"


class AppointmentForm(FlaskForm):
    dentist_id = IntegerField("Dentista", validators=[InputRequired(message="Dentista é obrigatório")])
    patient_id = IntegerField("Paciente", validators=[InputRequired(message="Paciente é obrigatório")])
    date = ISODateTimeField("Data", validators=[InputRequired(message="Data é obrigatória")])
    duration_minutes = IntegerField(
        "Duração",
        default=30,
        validators=[Optional(), NumberRange(min=15, max=480, message=DURATION_MESSAGE)],
    )
    status = StringField(
        "Status",
        default=AppointmentStatus.SCHEDULED,
        validators=[Optional(), AnyOf(AppointmentStatus.ALL, message=STATUS_MESSAGE)],
    )
    procedure_id = IntegerField("Procedimento", validators=[Optional()])
    procedure = StringField(
        "Procedimento",
        validators=[Optional(), Length(max=200, message="Procedimento deve ter no máximo 200 caracteres")],
    )
    notes = TextAreaField(
        "Observações",
        validators=[Optional(), Length(max=1000, message="Observações devem ter no máximo 1000 caracteres")],
    )


class AppointmentUpdateForm(AppointmentForm):
    dentist_id = IntegerField("Dentista", validators=[Optional()])
    patient_id = IntegerField("Paciente", validators=[Optional()])
    date = ISODateTimeField("Data", validators=[Optional()])
