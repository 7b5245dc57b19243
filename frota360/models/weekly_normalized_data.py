from datetime import datetime
from frota360.extensions import db
from frota360.models.audit_log import JSONVariant

class WeeklyNormalizedData(db.Model):
    __tablename__ = 'weekly_normalized_data'
    id = db.Column(db.Integer, primary_key=True)
    data_key = db.Column(db.String(255), unique=True, nullable=False)
    week_id = db.Column(db.String(8), nullable=False, index=True)
    week_start = db.Column(db.Date, nullable=False)
    week_end = db.Column(db.Date, nullable=False)
    platform = db.Column(db.String(16), nullable=False)
    reference_id = db.Column(db.String(128), nullable=False)
    reference_label = db.Column(db.String(255), nullable=True)
    # Null when the reference could not be matched to a driver
    driver_id = db.Column(db.Integer, db.ForeignKey('driver.id'), nullable=True)
    driver_name = db.Column(db.String(128), nullable=True)
    vehicle_plate = db.Column(db.String(64), nullable=True)
    total_value = db.Column(db.Float, default=0.0, nullable=False)
    total_trips = db.Column(db.Integer, default=0, nullable=False)
    raw_data_ref = db.Column(JSONVariant, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
