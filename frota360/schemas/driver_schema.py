from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field
from marshmallow import Schema, fields, validate
from frota360.models.driver import Driver, DRIVER_TYPES, DRIVER_STATUSES

class DriverSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = Driver
        load_instance = True
        include_fk = True
    id = auto_field(dump_only=True)
    name = auto_field(validate=validate.Length(min=1, max=128))
    email = fields.Email(allow_none=True)
    type = auto_field(validate=validate.OneOf(DRIVER_TYPES))
    status = auto_field(validate=validate.OneOf(DRIVER_STATUSES))
    rental_fee = fields.Float(validate=validate.Range(min=0))
    affiliate_level = fields.Integer(validate=validate.Range(min=1, max=3))
    admin_fee_mode = fields.String(allow_none=True, validate=validate.OneOf(('percent', 'fixed')))
    admin_fee_value = fields.Float(allow_none=True, validate=validate.Range(min=0))
    referred_by_id = fields.Integer(allow_none=True)
    fee_exempt_created_by = auto_field(dump_only=True)
    is_deleted = auto_field(dump_only=True)
    created_at = auto_field(dump_only=True)
    updated_at = auto_field(dump_only=True)
    is_renter = fields.Boolean(dump_only=True)

class AdminFeeExemptionSchema(Schema):
    start_date = fields.Date(required=True)
    weeks = fields.Integer(required=True, validate=validate.Range(min=1))
    reason = fields.String(allow_none=True)
