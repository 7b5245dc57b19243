from datetime import datetime
from frota360.extensions import db

class GoalReward(db.Model):
    """Weekly goal ("meta"): reaching `target` pays `reward_value`."""
    __tablename__ = 'goal_reward'
    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(255), nullable=False)
    criterion = db.Column(db.String(16), default='earnings', nullable=False)  # earnings | trips
    reward_type = db.Column(db.String(16), default='fixed', nullable=False)  # fixed | percent
    target = db.Column(db.Float, nullable=False)
    reward_value = db.Column(db.Float, nullable=False)
    level = db.Column(db.Integer, default=1, nullable=False)
    start_date = db.Column(db.Date, nullable=True)
    active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
