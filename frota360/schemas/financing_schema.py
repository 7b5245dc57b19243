from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field
from marshmallow import fields, validate
from frota360.models.financing import Financing

class FinancingSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = Financing
        load_instance = True
        include_fk = True
    id = auto_field(dump_only=True)
    driver_id = auto_field(required=True)
    type = auto_field(validate=validate.OneOf(('loan', 'discount')))
    amount = fields.Float(required=True, validate=validate.Range(min=0))
    weeks = fields.Integer(allow_none=True, validate=validate.Range(min=1))
    remaining_weeks = fields.Integer(allow_none=True, validate=validate.Range(min=0))
    weekly_amount = fields.Float(allow_none=True, validate=validate.Range(min=0))
    weekly_interest = fields.Float(validate=validate.Range(min=0, max=100))
    status = auto_field(validate=validate.OneOf(('active', 'completed')))
    created_at = auto_field(dump_only=True)
    updated_at = auto_field(dump_only=True)
