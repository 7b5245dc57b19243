from datetime import datetime
from frota360.extensions import db
from frota360.models.audit_log import JSONVariant

class AffiliateBonus(db.Model):
    """Multi-level commission earned by an indicator in one week."""
    __tablename__ = 'affiliate_bonus'
    id = db.Column(db.Integer, primary_key=True)
    indicator_id = db.Column(db.Integer, db.ForeignKey('driver.id'), nullable=False)
    week_id = db.Column(db.String(8), nullable=False, index=True)
    total = db.Column(db.Float, default=0.0, nullable=False)
    details = db.Column(JSONVariant, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    __table_args__ = (db.UniqueConstraint('indicator_id', 'week_id', name='_indicator_week_uc'),)
