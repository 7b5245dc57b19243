from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field
from marshmallow import Schema, fields, validate
from frota360.models.referral_invite import ReferralInvite
from frota360.models.referral_rule import ReferralRule

class ReferralRuleSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = ReferralRule
        load_instance = True
    id = auto_field(dump_only=True)
    bonus_amount = fields.Float(required=True, validate=validate.Range(min=0))
    minimum_weeks = fields.Integer(validate=validate.Range(min=0))
    created_at = auto_field(dump_only=True)

class ReferralInviteSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = ReferralInvite
        include_fk = True
        dump_only = ('id', 'invite_code', 'status', 'expires_at', 'accepted_at',
                     'accepted_by_driver_id', 'created_at')

class CreateInviteSchema(Schema):
    referrer_id = fields.Integer(allow_none=True)
    email = fields.Email(allow_none=True)
    phone = fields.String(allow_none=True)

class AcceptInviteSchema(Schema):
    invite_code = fields.String(required=True)
    driver_id = fields.Integer(allow_none=True)
