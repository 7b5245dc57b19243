import logging
from frota360.extensions import db
from frota360.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    @staticmethod
    def record(action, entity_type, entity_id=None, details=None, user_id=None):
        """Add an audit entry to the current transaction. Does not commit."""
        entry = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            details=details,
            changed_by=user_id,
        )
        db.session.add(entry)
        logger.info(f"AUDIT {action} {entity_type}:{entity_id} by {user_id}")
        return entry

    @staticmethod
    def list(entity_type=None, entity_id=None, limit=100):
        query = AuditLog.query
        if entity_type:
            query = query.filter_by(entity_type=entity_type)
        if entity_id is not None:
            query = query.filter_by(entity_id=str(entity_id))
        return query.order_by(AuditLog.id.desc()).limit(limit).all()
