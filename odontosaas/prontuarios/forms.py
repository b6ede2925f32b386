from flask_wtf import FlaskForm
from wtforms import FieldList, Form, FormField, IntegerField, StringField, TextAreaField
from wtforms.validators import DataRequired, InputRequired, Length, Optional

from ..utils_api import JSONDictField


class RecordProcedureForm(Form):
    # Subformulário (sem CSRF) para cada procedimento do prontuário
    code = StringField("Código", validators=[Optional(), Length(max=20)])
    description = StringField(
        "Descrição do procedimento",
        validators=[DataRequired(message="Descrição do procedimento é obrigatória"), Length(max=200)],
    )
    tooth = StringField("Dente", validators=[Optional(), Length(max=10)])


class RecordForm(FlaskForm):
    patient_id = IntegerField("Paciente", validators=[InputRequired(message="Paciente é obrigatório")])
    dentist_id = IntegerField("Dentista", validators=[InputRequired(message="Dentista é obrigatório")])
    appointment_id = IntegerField("Agendamento", validators=[Optional()])
    attendance_id = IntegerField("Atendimento", validators=[Optional()])
    description = TextAreaField(
        "Descrição",
        validators=[
            DataRequired(message="Descrição é obrigatória"),
            Length(min=10, message="Descrição deve ter no mínimo 10 caracteres"),
        ],
    )
    procedures = FieldList(FormField(RecordProcedureForm))
    odontogram = JSONDictField("Odontograma", validators=[Optional()])
