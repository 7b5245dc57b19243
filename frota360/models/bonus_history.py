from datetime import datetime
from frota360.extensions import db
from frota360.models.audit_log import JSONVariant

BONUS_KINDS = ('goal', 'referral', 'affiliate', 'commission_rule')

class BonusHistory(db.Model):
    """Ledger of bonuses that were actually paid."""
    __tablename__ = 'bonus_history'
    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(16), nullable=False)
    driver_id = db.Column(db.Integer, db.ForeignKey('driver.id'), nullable=False)
    week_id = db.Column(db.String(8), nullable=False)
    reference = db.Column(db.String(64), nullable=True)
    amount = db.Column(db.Float, nullable=False)
    payment_id = db.Column(db.Integer, db.ForeignKey('driver_payment.id'), nullable=True)
    details = db.Column(JSONVariant, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
