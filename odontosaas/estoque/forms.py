from flask_wtf import FlaskForm
from wtforms import BooleanField, IntegerField, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, InputRequired, Length, NumberRange, Optional

from .models import MovementType


class InventoryItemForm(FlaskForm):
    name = StringField(
        "Nome",
        validators=[
            DataRequired(message="Nome é obrigatório"),
            Length(min=2, max=100, message="Nome deve ter entre 2 e 100 caracteres"),
        ],
    )
    description = TextAreaField(
        "Descrição",
        validators=[Optional(), Length(max=500, message="Descrição deve ter no máximo 500 caracteres")],
    )
    unit = StringField(
        "Unidade",
        validators=[
            DataRequired(message="Unidade é obrigatória"),
            Length(min=1, max=20, message="Unidade deve ter entre 1 e 20 caracteres"),
        ],
    )
    current_quantity = IntegerField(
        "Quantidade atual",
        default=0,
        validators=[Optional(), NumberRange(min=0, message="Quantidade não pode ser negativa")],
    )
    min_quantity = IntegerField(
        "Quantidade mínima",
        validators=[Optional(), NumberRange(min=0, message="Quantidade mínima não pode ser negativa")],
    )
    is_active = BooleanField("Ativo", default=True)


class InventoryItemUpdateForm(InventoryItemForm):
    name = StringField(
        "Nome",
        validators=[Optional(), Length(min=2, max=100, message="Nome deve ter entre 2 e 100 caracteres")],
    )
    unit = StringField(
        "Unidade",
        validators=[Optional(), Length(min=1, max=20, message="Unidade deve ter entre 1 e 20 caracteres")],
    )


class InventoryMovementForm(FlaskForm):
    item_id = IntegerField("Item", validators=[InputRequired(message="Item é obrigatório")])
    type = StringField(
        "Tipo",
        validators=[
            DataRequired(message="Tipo é obrigatório"),
            AnyOf(MovementType.ALL, message="Tipo deve ser IN ou OUT"),
        ],
    )
    quantity = IntegerField(
        "Quantidade",
        validators=[
            InputRequired(message="Quantidade é obrigatória"),
            NumberRange(min=1, message="Quantidade deve ser no mínimo 1"),
        ],
    )
    appointment_id = IntegerField("Agendamento", validators=[Optional()])
    notes = TextAreaField(
        "Observações",
        validators=[Optional(), Length(max=1000, message="Observações devem ter no máximo 1000 caracteres")],
    )
