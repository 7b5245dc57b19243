from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field
from marshmallow import ValidationError, fields, validate, validates_schema
from frota360.models.commission_rule import CommissionRule

class CommissionRuleSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = CommissionRule
        load_instance = True
    id = auto_field(dump_only=True)
    type = auto_field(validate=validate.OneOf(('base', 'recruitment')))
    level = fields.Integer(validate=validate.Range(min=1, max=3))
    percentage = fields.Float(validate=validate.Range(min=0, max=100))
    value = fields.Float(allow_none=True, validate=validate.Range(min=0))
    min_earnings = fields.Float(allow_none=True, validate=validate.Range(min=0))
    min_recruitments = fields.Integer(allow_none=True, validate=validate.Range(min=0))
    max_weeks_per_year = fields.Integer(validate=validate.Range(min=1, max=53))
    created_at = auto_field(dump_only=True)
    updated_at = auto_field(dump_only=True)

    @validates_schema
    def validate_dates(self, data, **kwargs):
        start, end = data.get('start_date'), data.get('end_date')
        if start and end and end < start:
            raise ValidationError('end_date must be after start_date', 'end_date')
