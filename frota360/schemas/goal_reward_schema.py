from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field
from marshmallow import fields, validate
from frota360.models.goal_reward import GoalReward

class GoalRewardSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = GoalReward
        load_instance = True
    id = auto_field(dump_only=True)
    criterion = auto_field(validate=validate.OneOf(('earnings', 'trips')))
    reward_type = auto_field(validate=validate.OneOf(('fixed', 'percent')))
    target = fields.Float(required=True, validate=validate.Range(min=0))
    reward_value = fields.Float(required=True, validate=validate.Range(min=0))
    level = fields.Integer(validate=validate.Range(min=1, max=3))
    created_at = auto_field(dump_only=True)
