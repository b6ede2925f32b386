from flask_wtf import FlaskForm
from wtforms import DecimalField, IntegerField, StringField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional, Regexp

from ..utils_api import JSONDictField, ListField

CRO_REGEX = r"^CRO-[A-Z]{2}\s+\d+$"
CRO_MESSAGE = "CRO deve estar no formato CRO-UF 12345"


class DentistForm(FlaskForm):
    user_id = IntegerField("Usuário", validators=[InputRequired(message="Usuário é obrigatório")])
    cro = StringField(
        "CRO",
        validators=[DataRequired(message="CRO é obrigatório"), Regexp(CRO_REGEX, message=CRO_MESSAGE)],
    )
    specialty = StringField(
        "Especialidade",
        validators=[Optional(), Length(max=100, message="Especialidade deve ter no máximo 100 caracteres")],
    )
    working_hours = JSONDictField("Horário de trabalho", validators=[Optional()])
    bank_info = JSONDictField("Dados bancários", validators=[Optional()])
    commission = DecimalField(
        "Comissão",
        validators=[Optional(), NumberRange(min=0, max=100, message="Comissão deve estar entre 0 e 100")],
    )


class DentistUpdateForm(DentistForm):
    user_id = IntegerField("Usuário", validators=[Optional()])
    cro = StringField("CRO", validators=[Optional(), Regexp(CRO_REGEX, message=CRO_MESSAGE)])


class DentistProceduresForm(FlaskForm):
    procedure_ids = ListField("Procedimentos", coerce=int)


class DentistSpecialtiesForm(FlaskForm):
    specialty_ids = ListField("Especialidades", coerce=int)
