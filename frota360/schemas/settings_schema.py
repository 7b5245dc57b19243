from marshmallow import Schema, fields, validate
from frota360.services.admin_fee import ADMIN_FEE_BASES, ADMIN_FEE_MODES
from frota360.services.settings_service import FINANCING_POLICIES

class AdminFeeRuleSchema(Schema):
    mode = fields.String(required=True, validate=validate.OneOf(ADMIN_FEE_MODES))
    value = fields.Float(required=True, validate=validate.Range(min=0))
    base = fields.String(required=True, validate=validate.OneOf(ADMIN_FEE_BASES))

class AdminFeeConfigSchema(Schema):
    affiliate = fields.Nested(AdminFeeRuleSchema, required=True)
    renter = fields.Nested(AdminFeeRuleSchema, required=True)

class FinancingPolicySchema(Schema):
    dynamicCalculation = fields.Boolean()
    eligibilityPolicy = fields.String(validate=validate.OneOf(FINANCING_POLICIES))
    paymentDecrementDynamic = fields.Boolean()

class FinancialConfigSchema(Schema):
    adminFeePercent = fields.Float(validate=validate.Range(min=0, max=100))
    adminFeeFixedDefault = fields.Float(validate=validate.Range(min=0))
    financing = fields.Nested(FinancingPolicySchema)

class CommissionConfigSchema(Schema):
    min_weekly_revenue_for_eligibility = fields.Float(validate=validate.Range(min=0))
    base = fields.String(validate=validate.OneOf(('repasse', 'ganhosMenosIVA')))
    max_levels = fields.Integer(validate=validate.Range(min=1, max=10))
    levels = fields.Dict(keys=fields.String(), values=fields.Float(validate=validate.Range(min=0, max=1)))

class ReferralConfigSchema(Schema):
    bonus_amount = fields.Float(validate=validate.Range(min=0))
    minimum_weeks = fields.Integer(validate=validate.Range(min=0))

class GoalsConfigSchema(Schema):
    Q1 = fields.Float(validate=validate.Range(min=0))
    Q2 = fields.Float(validate=validate.Range(min=0))
    Q3 = fields.Float(validate=validate.Range(min=0))
    Q4 = fields.Float(validate=validate.Range(min=0))
