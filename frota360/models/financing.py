from datetime import datetime
from frota360.extensions import db

class Financing(db.Model):
    """A loan paid in weekly installments, or a permanent weekly discount."""
    __tablename__ = 'financing'
    id = db.Column(db.Integer, primary_key=True)
    driver_id = db.Column(db.Integer, db.ForeignKey('driver.id'), nullable=False)
    type = db.Column(db.String(16), default='loan', nullable=False)
    amount = db.Column(db.Float, nullable=False)
    weeks = db.Column(db.Integer, nullable=True)
    remaining_weeks = db.Column(db.Integer, nullable=True)
    weekly_amount = db.Column(db.Float, nullable=True)
    weekly_interest = db.Column(db.Float, default=0.0, nullable=False)
    start_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(16), default='active', nullable=False)
    description = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    driver = db.relationship('Driver', backref=db.backref('financings', lazy=True))
