from datetime import datetime
from frota360.extensions import db
from frota360.models.audit_log import JSONVariant

PAYMENT_STATUSES = ('pending', 'paid', 'cancelled')

class DriverPayment(db.Model):
    __tablename__ = 'driver_payment'
    id = db.Column(db.Integer, primary_key=True)
    driver_id = db.Column(db.Integer, db.ForeignKey('driver.id'), nullable=False)
    driver_name = db.Column(db.String(128), nullable=False)
    driver_type = db.Column(db.String(16), nullable=False)
    vehicle_plate = db.Column(db.String(16), nullable=True)
    iban = db.Column(db.String(64), nullable=True)
    week_id = db.Column(db.String(8), nullable=False, index=True)
    week_start = db.Column(db.Date, nullable=False)
    week_end = db.Column(db.Date, nullable=False)

    # Computed weekly figures
    uber_total = db.Column(db.Float, default=0.0, nullable=False)
    bolt_total = db.Column(db.Float, default=0.0, nullable=False)
    trips = db.Column(db.Integer, default=0, nullable=False)
    ganhos_total = db.Column(db.Float, default=0.0, nullable=False)
    iva_valor = db.Column(db.Float, default=0.0, nullable=False)
    ganhos_menos_iva = db.Column(db.Float, default=0.0, nullable=False)
    despesas_adm = db.Column(db.Float, default=0.0, nullable=False)
    combustivel = db.Column(db.Float, default=0.0, nullable=False)
    viaverde = db.Column(db.Float, default=0.0, nullable=False)
    aluguel = db.Column(db.Float, default=0.0, nullable=False)
    financing_amount = db.Column(db.Float, default=0.0, nullable=False)
    total_despesas = db.Column(db.Float, default=0.0, nullable=False)
    bonus_metas = db.Column(db.Float, default=0.0, nullable=False)
    bonus_referral = db.Column(db.Float, default=0.0, nullable=False)
    commission_amount = db.Column(db.Float, default=0.0, nullable=False)
    affiliate_commission = db.Column(db.Float, default=0.0, nullable=False)
    repasse = db.Column(db.Float, default=0.0, nullable=False)
    record_snapshot = db.Column(JSONVariant, nullable=True)
    pending_bonuses = db.Column(JSONVariant, nullable=True)
    paid_bonuses = db.Column(JSONVariant, nullable=True)

    # Payout
    payment_status = db.Column(db.String(16), default='pending', nullable=False)
    base_amount = db.Column(db.Float, default=0.0, nullable=False)
    bonus_amount = db.Column(db.Float, default=0.0, nullable=False)
    discount_amount = db.Column(db.Float, default=0.0, nullable=False)
    total_amount = db.Column(db.Float, default=0.0, nullable=False)
    base_amount_cents = db.Column(db.Integer, default=0, nullable=False)
    bonus_amount_cents = db.Column(db.Integer, default=0, nullable=False)
    discount_amount_cents = db.Column(db.Integer, default=0, nullable=False)
    total_amount_cents = db.Column(db.Integer, default=0, nullable=False)
    payment_date = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    proof_file_name = db.Column(db.String(255), nullable=True)
    proof_url = db.Column(db.String(512), nullable=True)
    paid_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    financing_processed = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    driver = db.relationship('Driver', backref=db.backref('payments', lazy=True))
    __table_args__ = (db.UniqueConstraint('driver_id', 'week_id', name='_driver_week_payment_uc'),)
