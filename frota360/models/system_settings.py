from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from frota360.extensions import db
from frota360.models.audit_log import JSONVariant
from datetime import datetime

class SystemSettings(db.Model):
    __tablename__ = "system_settings"

    id = Column(Integer, primary_key=True)
    setting_key = Column(String(100), unique=True, nullable=False)
    setting_value = Column(JSONVariant)
    updated_by = Column(Integer, ForeignKey('user.id'))
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<SystemSettings id={self.id} setting_key={self.setting_key}>"
