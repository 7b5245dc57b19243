from datetime import datetime
from frota360.extensions import db
from frota360.models.audit_log import JSONVariant

class RawFileArchive(db.Model):
    """An uploaded platform file, kept as parsed rows until processed."""
    __tablename__ = 'raw_file_archive'
    id = db.Column(db.Integer, primary_key=True)
    week_id = db.Column(db.String(8), nullable=False, index=True)
    platform = db.Column(db.String(16), nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    rows = db.Column(JSONVariant, nullable=False, default=list)
    row_count = db.Column(db.Integer, default=0, nullable=False)
    imported_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    processed = db.Column(db.Boolean, default=False, nullable=False)
    processed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @property
    def archive_ref(self):
        return f"raw-{self.id}-{self.file_name}"
