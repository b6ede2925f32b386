from flask_wtf import FlaskForm
from wtforms import IntegerField, StringField, TextAreaField
from wtforms.validators import (
    AnyOf,
    DataRequired,
    InputRequired,
    Length,
    NumberRange,
    Optional,
    Regexp,
    ValidationError,
)

from ..utils_api import JSONDictField, ListField
from .models import DocumentType

CID_REGEX = r"^[A-Z]\d{2}(\.\d)?$"
TOOTH_REGEX = r"^(1[1-8]|2[1-8]|3[1-8]|4[1-8])$"
FACES = ("O", "M", "D", "V", "L")
CLINICAL_STATUSES = ("SAUDAVEL", "CARIE", "RESTAURADO", "AUSENTE", "EM_TRATAMENTO", "EXTRACAO")


class CheckInForm(FlaskForm):
    patient_id = IntegerField("Paciente", validators=[InputRequired(message="Paciente é obrigatório")])
    appointment_id = IntegerField("Agendamento", validators=[Optional()])
    dentist_id = IntegerField("Dentista", validators=[Optional()])
    notes = TextAreaField("Observações", validators=[Optional(), Length(max=1000)])


class StartForm(FlaskForm):
    dentist_id = IntegerField("Dentista", validators=[Optional()])


class CancelForm(FlaskForm):
    reason = TextAreaField(
        "Motivo",
        validators=[Optional(), Length(max=500, message="Motivo deve ter no máximo 500 caracteres")],
    )


class CidForm(FlaskForm):
    cid_code = StringField(
        "Código CID",
        validators=[
            DataRequired(message="Código CID é obrigatório"),
            Regexp(CID_REGEX, message="Código CID deve ter formato válido (ex: K02.0, Z01.2)"),
        ],
    )
    description = StringField(
        "Descrição", validators=[DataRequired(message="Descrição é obrigatória"), Length(max=255)]
    )
    observation = TextAreaField("Observação", validators=[Optional(), Length(max=500)])


class AttendanceProcedureForm(FlaskForm):
    procedure_id = IntegerField(
        "Procedimento", validators=[InputRequired(message="Procedimento é obrigatório")]
    )
    dentist_id = IntegerField("Dentista", validators=[Optional()])
    tooth = StringField(
        "Dente",
        validators=[
            DataRequired(message="Dente é obrigatório"),
            Regexp(TOOTH_REGEX, message="Dente deve estar entre 11-18, 21-28, 31-38, 41-48"),
        ],
    )
    faces = ListField("Faces", coerce=lambda v: str(v).strip().upper())
    clinical_status = StringField(
        "Status clínico",
        validators=[
            DataRequired(message="Status clínico inválido"),
            AnyOf(CLINICAL_STATUSES, message="Status clínico inválido"),
        ],
    )
    quantity = IntegerField(
        "Quantidade",
        default=1,
        validators=[Optional(), NumberRange(min=1, message="Quantidade deve ser no mínimo 1")],
    )
    procedure_code = StringField("Código", validators=[Optional(), Length(max=50)])
    observations = TextAreaField("Observações", validators=[Optional(), Length(max=1000)])

    def validate_faces(self, field):
        if not field.data:
            raise ValidationError("Selecione pelo menos uma face")
        invalid = [f for f in field.data if f not in FACES]
        if invalid:
            raise ValidationError("Faces devem ser O, M, D, V ou L")


class OdontogramForm(FlaskForm):
    # Recebe o campo "data" do corpo (nome reservado em Form)
    teeth = JSONDictField("Odontograma", validators=[InputRequired(message="Odontograma deve ser um objeto válido")])

    def validate_teeth(self, field):
        if field.data is None:
            raise ValidationError("Odontograma deve ser um objeto válido")
        for tooth, status in field.data.items():
            if not isinstance(status, str):
                raise ValidationError(f"Status do dente {tooth} deve ser texto")


class DocumentForm(FlaskForm):
    type = StringField(
        "Tipo",
        validators=[
            DataRequired(message="Tipo de documento inválido"),
            AnyOf(DocumentType.ALL, message="Tipo de documento inválido"),
        ],
    )
    payload = JSONDictField("Conteúdo", validators=[InputRequired(message="Conteúdo do documento é obrigatório")])
