import logging
from frota360.extensions import db
from frota360.models.commission_rule import CommissionRule
from frota360.services.errors import ServiceError
from frota360.utils.timezone_utils import coerce_date_fields

class CommissionRuleService:
    @staticmethod
    def get_all(active_only=False):
        try:
            query = CommissionRule.query
            if active_only:
                query = query.filter_by(active=True)
            return query.order_by(CommissionRule.level, CommissionRule.id).all()
        except Exception as e:
            logging.error(f"Error fetching commission rules: {e}", exc_info=True)
            raise ServiceError("Could not fetch commission rules. Please try again later.")

    @staticmethod
    def get_by_id(rule_id):
        return db.session.get(CommissionRule, rule_id)

    @staticmethod
    def create(data):
        data = coerce_date_fields(dict(data), 'start_date', 'end_date')
        try:
            rule = CommissionRule(**data)
            db.session.add(rule)
            db.session.commit()
            return rule
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error creating commission rule: {e}", exc_info=True)
            raise ServiceError("Could not create commission rule. Please try again later.")

    @staticmethod
    def update(rule_id, data):
        data = coerce_date_fields(dict(data), 'start_date', 'end_date')
        try:
            rule = db.session.get(CommissionRule, rule_id)
            if not rule:
                return None
            for key, value in data.items():
                setattr(rule, key, value)
            db.session.commit()
            return rule
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error updating commission rule: {e}", exc_info=True)
            raise ServiceError("Could not update commission rule. Please try again later.")

    @staticmethod
    def delete(rule_id):
        """Soft delete: the rule is deactivated."""
        try:
            rule = db.session.get(CommissionRule, rule_id)
            if not rule:
                return False
            rule.active = False
            db.session.commit()
            return True
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error deleting commission rule: {e}", exc_info=True)
            raise ServiceError("Could not delete commission rule. Please try again later.")
