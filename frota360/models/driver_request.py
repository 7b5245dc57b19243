from datetime import datetime
from frota360.extensions import db
from frota360.models.audit_log import JSONVariant

REQUEST_STATUSES = ('pending', 'approved', 'rejected')

class DriverRequest(db.Model):
    """Onboarding application sent from the public site."""
    __tablename__ = 'driver_request'
    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(128), nullable=False)
    birth_date = db.Column(db.Date, nullable=True)
    email = db.Column(db.String(128), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    city = db.Column(db.String(64), nullable=True)
    nif = db.Column(db.String(16), nullable=True)
    license_number = db.Column(db.String(32), nullable=True)
    type = db.Column(db.String(16), nullable=False)
    vehicle = db.Column(JSONVariant, nullable=True)  # make, model, year, plate
    status = db.Column(db.String(16), default='pending', nullable=False, index=True)

    # Referral captured from the invite link
    referral_invite_code = db.Column(db.String(64), nullable=True)
    referrer_id = db.Column(db.Integer, db.ForeignKey('driver.id'), nullable=True)

    driver_id = db.Column(db.Integer, db.ForeignKey('driver.id'), nullable=True)
    admin_notes = db.Column(db.Text, nullable=True)
    reviewed_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
