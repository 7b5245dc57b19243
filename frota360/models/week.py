from datetime import datetime
from frota360.extensions import db

PLATFORMS = ('uber', 'bolt', 'myprio', 'viaverde')
WEEK_STATUSES = ('draft', 'imported', 'processed', 'paid')

class Week(db.Model):
    __tablename__ = 'week'
    id = db.Column(db.Integer, primary_key=True)
    week_id = db.Column(db.String(8), unique=True, nullable=False)
    week_start = db.Column(db.Date, nullable=False)
    week_end = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), default='draft', nullable=False)
    total_records = db.Column(db.Integer, default=0, nullable=False)
    total_amount = db.Column(db.Float, default=0.0, nullable=False)
    total_bonus = db.Column(db.Float, default=0.0, nullable=False)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    data_sources = db.relationship(
        'WeeklyDataSource', backref='week', cascade='all, delete-orphan', lazy=True
    )

class WeeklyDataSource(db.Model):
    """Import status of one platform for one week."""
    __tablename__ = 'weekly_data_source'
    id = db.Column(db.Integer, primary_key=True)
    week_ref = db.Column(db.Integer, db.ForeignKey('week.id', ondelete='CASCADE'), nullable=False)
    platform = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), default='pending', nullable=False)
    origin = db.Column(db.String(16), default='manual', nullable=False)
    records_count = db.Column(db.Integer, default=0, nullable=False)
    drivers_count = db.Column(db.Integer, default=0, nullable=False)
    archive_ref = db.Column(db.String(255), nullable=True)
    last_error = db.Column(db.Text, nullable=True)
    last_import_at = db.Column(db.DateTime, nullable=True)
    __table_args__ = (db.UniqueConstraint('week_ref', 'platform', name='_week_platform_uc'),)
