import logging
from frota360.extensions import db
from frota360.models.contract_template import ContractTemplate
from frota360.models.driver import DRIVER_TYPES
from frota360.services.errors import ServiceError, NotFoundError


class ContractTemplateService:
    @staticmethod
    def get_all(template_type=None, active_only=False):
        try:
            query = ContractTemplate.query
            if template_type:
                query = query.filter_by(type=template_type)
            if active_only:
                query = query.filter_by(is_active=True)
            return query.order_by(ContractTemplate.uploaded_at.desc(), ContractTemplate.id.desc()).all()
        except Exception as e:
            logging.error(f"Error fetching contract templates: {e}", exc_info=True)
            raise ServiceError("Could not fetch contract templates. Please try again later.")

    @staticmethod
    def get_by_id(template_id):
        return db.session.get(ContractTemplate, template_id)

    @staticmethod
    def get_active(template_type):
        if template_type not in DRIVER_TYPES:
            raise ServiceError(f"Invalid contract type: {template_type}")
        template = ContractTemplate.query.filter_by(type=template_type, is_active=True).first()
        if not template:
            raise NotFoundError(f"No active contract template for {template_type}")
        return template

    @staticmethod
    def _deactivate_others(template):
        """Only one active version per driver type."""
        ContractTemplate.query.filter(
            ContractTemplate.type == template.type,
            ContractTemplate.is_active.is_(True),
            ContractTemplate.id != template.id,
        ).update({'is_active': False}, synchronize_session=False)

    @staticmethod
    def create(data, user_id=None):
        if data.get('type') not in DRIVER_TYPES:
            raise ServiceError(f"Invalid contract type: {data.get('type')}")
        if ContractTemplate.query.filter_by(type=data['type'], version=data.get('version')).first():
            raise ServiceError(f"Version {data.get('version')} already exists for {data['type']}")
        try:
            template = ContractTemplate(
                type=data['type'],
                version=data['version'],
                file_name=data['file_name'],
                file_url=data.get('file_url'),
                is_active=True,
                uploaded_by=user_id,
            )
            db.session.add(template)
            db.session.flush()
            ContractTemplateService._deactivate_others(template)
            db.session.commit()
            logging.info(f"Contract template {template.type} v{template.version} uploaded by user {user_id}")
            return template
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error creating contract template: {e}", exc_info=True)
            raise ServiceError("Could not create contract template. Please try again later.")

    @staticmethod
    def update(template_id, data):
        try:
            template = db.session.get(ContractTemplate, template_id)
            if not template:
                return None
            for key in ('version', 'file_name', 'file_url', 'is_active'):
                if key in data:
                    setattr(template, key, data[key])
            if template.is_active:
                ContractTemplateService._deactivate_others(template)
            db.session.commit()
            return template
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error updating contract template: {e}", exc_info=True)
            raise ServiceError("Could not update contract template. Please try again later.")

    @staticmethod
    def delete(template_id):
        try:
            template = db.session.get(ContractTemplate, template_id)
            if not template:
                return False
            db.session.delete(template)
            db.session.commit()
            return True
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error deleting contract template: {e}", exc_info=True)
            raise ServiceError("Could not delete contract template. Please try again later.")
