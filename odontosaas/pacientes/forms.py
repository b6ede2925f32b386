from flask_wtf import FlaskForm
from wtforms import BooleanField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, Length, Optional

from ..utils_api import ISODateField


class PatientForm(FlaskForm):
    name = StringField(
        "Nome",
        validators=[
            DataRequired(message="Nome é obrigatório"),
            Length(min=2, max=100, message="Nome deve ter entre 2 e 100 caracteres"),
        ],
    )
    email = StringField("Email", validators=[Optional(), Email(message="Email inválido")])
    phone = StringField(
        "Telefone", validators=[Optional(), Length(max=20, message="Telefone deve ter no máximo 20 caracteres")]
    )
    cpf = StringField("CPF", validators=[Optional(), Length(max=14, message="CPF deve ter no máximo 14 caracteres")])
    birth_date = ISODateField("Data de nascimento", validators=[Optional()])
    address = TextAreaField(
        "Endereço",
        validators=[Optional(), Length(max=500, message="Endereço deve ter no máximo 500 caracteres")],
    )
    notes = TextAreaField(
        "Observações",
        validators=[Optional(), Length(max=1000, message="Observações devem ter no máximo 1000 caracteres")],
    )
    is_active = BooleanField("Ativo")


class PatientUpdateForm(PatientForm):
    name = StringField(
        "Nome",
        validators=[Optional(), Length(min=2, max=100, message="Nome deve ter entre 2 e 100 caracteres")],
    )
