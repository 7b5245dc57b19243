from datetime import datetime
from frota360.extensions import db

class CommissionRule(db.Model):
    __tablename__ = 'commission_rule'
    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(16), nullable=False)  # base | recruitment
    level = db.Column(db.Integer, default=1, nullable=False)
    percentage = db.Column(db.Float, default=0.0, nullable=False)
    value = db.Column(db.Float, nullable=True)
    description = db.Column(db.String(255), nullable=False)
    active = db.Column(db.Boolean, default=True, nullable=False)
    min_earnings = db.Column(db.Float, nullable=True)
    min_recruitments = db.Column(db.Integer, nullable=True)
    max_weeks_per_year = db.Column(db.Integer, default=52, nullable=False)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def is_valid_on(self, day):
        if not self.active:
            return False
        if self.start_date and day < self.start_date:
            return False
        if self.end_date and day > self.end_date:
            return False
        return True
