from datetime import datetime
from frota360.extensions import db

class ReferralInvite(db.Model):
    __tablename__ = 'referral_invite'
    id = db.Column(db.Integer, primary_key=True)
    referrer_id = db.Column(db.Integer, db.ForeignKey('driver.id'), nullable=False)
    invite_code = db.Column(db.String(64), unique=True, nullable=False)
    email = db.Column(db.String(128), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    status = db.Column(db.String(16), default='pending', nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    accepted_at = db.Column(db.DateTime, nullable=True)
    accepted_by_driver_id = db.Column(db.Integer, db.ForeignKey('driver.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    referrer = db.relationship('Driver', foreign_keys=[referrer_id], backref='invites')
