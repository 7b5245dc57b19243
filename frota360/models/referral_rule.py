from datetime import datetime
from frota360.extensions import db

class ReferralRule(db.Model):
    __tablename__ = 'referral_rule'
    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(255), nullable=False)
    bonus_amount = db.Column(db.Float, nullable=False)
    minimum_weeks = db.Column(db.Integer, default=4, nullable=False)
    active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
