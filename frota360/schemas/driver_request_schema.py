from marshmallow_sqlalchemy import SQLAlchemyAutoSchema
from marshmallow import Schema, fields, validate
from frota360.models.driver import DRIVER_TYPES
from frota360.models.driver_request import DriverRequest

class VehicleSchema(Schema):
    make = fields.String(required=True)
    model = fields.String(required=True)
    year = fields.Integer(validate=validate.Range(min=1990, max=2100))
    plate = fields.String(required=True, validate=validate.Length(min=1, max=16))

class CreateDriverRequestSchema(Schema):
    full_name = fields.String(required=True, validate=validate.Length(min=3, max=128))
    birth_date = fields.Date(allow_none=True)
    email = fields.Email(required=True)
    phone = fields.String(required=True, validate=validate.Length(min=9, max=32))
    city = fields.String(allow_none=True)
    nif = fields.String(allow_none=True, validate=validate.Regexp(r'^\d{9}$', error='NIF must have 9 digits'))
    license_number = fields.String(allow_none=True)
    type = fields.String(required=True, validate=validate.OneOf(DRIVER_TYPES))
    vehicle = fields.Nested(VehicleSchema, allow_none=True)
    referral_invite_code = fields.String(allow_none=True)

class ReviewDriverRequestSchema(Schema):
    admin_notes = fields.String(allow_none=True)

class DriverRequestSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = DriverRequest
        include_fk = True
    vehicle = fields.Raw(dump_only=True)
