from marshmallow import Schema, ValidationError, fields, validate
from frota360.utils.timezone_utils import is_valid_week_id

def validate_week_id(value):
    if not is_valid_week_id(value):
        raise ValidationError("Not an ISO week id (YYYY-Www).")

class MarkPaidSchema(Schema):
    driver_id = fields.Integer(required=True)
    week_id = fields.String(required=True, validate=validate_week_id)
    bonus_amount = fields.Float(load_default=0.0, validate=validate.Range(min=0))
    discount_amount = fields.Float(load_default=0.0, validate=validate.Range(min=0))
    payment_date = fields.DateTime(allow_none=True)
    notes = fields.String(allow_none=True)
    iban = fields.String(allow_none=True)
    proof_file_name = fields.String(allow_none=True)
    proof_url = fields.String(allow_none=True)
