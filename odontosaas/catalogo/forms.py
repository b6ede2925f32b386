from flask_wtf import FlaskForm
from wtforms import BooleanField, DecimalField, IntegerField, StringField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional


class SpecialtyForm(FlaskForm):
    name = StringField(
        "Nome",
        validators=[
            DataRequired(message="Nome é obrigatório"),
            Length(min=2, max=100, message="Nome deve ter entre 2 e 100 caracteres"),
        ],
    )
    description = StringField(
        "Descrição",
        validators=[Optional(), Length(max=500, message="Descrição deve ter no máximo 500 caracteres")],
    )


class ProcedureForm(FlaskForm):
    specialty_id = IntegerField("Especialidade", validators=[Optional()])
    name = StringField(
        "Nome",
        validators=[
            DataRequired(message="Nome é obrigatório"),
            Length(min=2, max=100, message="Nome deve ter entre 2 e 100 caracteres"),
        ],
    )
    description = StringField(
        "Descrição",
        validators=[Optional(), Length(max=500, message="Descrição deve ter no máximo 500 caracteres")],
    )
    base_value = DecimalField(
        "Valor base",
        validators=[
            InputRequired(message="Valor base é obrigatório"),
            NumberRange(min=0, max=999999.99, message="Valor base deve estar entre 0 e 999.999,99"),
        ],
    )
    commission_percentage = DecimalField(
        "Comissão",
        default=0,
        validators=[
            Optional(),
            NumberRange(min=0, max=100, message="Comissão deve estar entre 0 e 100"),
        ],
    )
    is_active = BooleanField("Ativo", default=True)


class ProcedureUpdateForm(ProcedureForm):
    name = StringField(
        "Nome",
        validators=[Optional(), Length(min=2, max=100, message="Nome deve ter entre 2 e 100 caracteres")],
    )
    base_value = DecimalField(
        "Valor base",
        validators=[
            Optional(),
            NumberRange(min=0, max=999999.99, message="Valor base deve estar entre 0 e 999.999,99"),
        ],
    )
