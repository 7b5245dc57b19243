from datetime import datetime
from frota360.extensions import db
from sqlalchemy import false

DRIVER_TYPES = ('affiliate', 'renter')
DRIVER_STATUSES = ('pending', 'active', 'inactive', 'suspended')

class Driver(db.Model):
    __tablename__ = 'driver'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(128), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    iban = db.Column(db.String(64), nullable=True)
    type = db.Column(db.String(16), default='affiliate', nullable=False)
    status = db.Column(db.String(16), default='pending', nullable=False)
    rental_fee = db.Column(db.Float, default=0.0, nullable=False)
    vehicle_plate = db.Column(db.String(16), nullable=True)

    # Platform identity keys used to reconcile imported rows
    uber_key = db.Column(db.String(64), nullable=True)
    bolt_key = db.Column(db.String(128), nullable=True)
    myprio_key = db.Column(db.String(64), nullable=True)
    viaverde_key = db.Column(db.String(64), nullable=True)

    # Referral network
    referred_by_id = db.Column(db.Integer, db.ForeignKey('driver.id'), nullable=True)
    recruited_at = db.Column(db.DateTime, nullable=True)
    affiliate_level = db.Column(db.Integer, default=1, nullable=False)

    # Admin fee override (None = use the type rule)
    admin_fee_mode = db.Column(db.String(16), nullable=True)
    admin_fee_value = db.Column(db.Float, nullable=True)

    # Admin fee exemption
    fee_exempt_start = db.Column(db.Date, nullable=True)
    fee_exempt_weeks = db.Column(db.Integer, nullable=True)
    fee_exempt_reason = db.Column(db.String(255), nullable=True)
    fee_exempt_created_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)

    is_deleted = db.Column(db.Boolean, default=False, nullable=False, server_default=false())
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    referrer = db.relationship('Driver', remote_side=[id], backref='recruits')

    @property
    def is_renter(self):
        return self.type == 'renter'

    @classmethod
    def query_active(cls):
        """Query active (non-deleted) records only"""
        return cls.query.filter_by(is_deleted=False)

    @classmethod
    def query_all(cls):
        """Query all records including deleted ones"""
        return cls.query

    def __repr__(self):
        return f"<Driver id={self.id} name={self.name}>"
