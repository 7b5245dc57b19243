from datetime import datetime
from frota360.extensions import db

class ContractTemplate(db.Model):
    """Contract document version per driver type. The file itself lives in external storage."""
    __tablename__ = 'contract_template'
    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(16), nullable=False, index=True)  # affiliate | renter
    version = db.Column(db.String(32), nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    file_url = db.Column(db.String(512), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    uploaded_by = db.Column(db.Integer, db.ForeignKey('user.id', ondelete="SET NULL"), nullable=True)
    uploaded_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    __table_args__ = (db.UniqueConstraint('type', 'version', name='_contract_type_version_uc'),)
