from flask import Blueprint, request, jsonify
from flask_security import roles_accepted, current_user
import logging
from frota360.extensions import db
from frota360.services.contract_service import ContractTemplateService
from frota360.services.errors import ServiceError, NotFoundError
from frota360.schemas.contract_schema import ContractTemplateSchema

contracts_bp = Blueprint('contracts', __name__)
schema = ContractTemplateSchema(session=db.session)
schema_many = ContractTemplateSchema(many=True, session=db.session)

@contracts_bp.route('/contract-templates', methods=['GET'])
@roles_accepted('admin')
def list_contract_templates():
    try:
        active_only = request.args.get('active', 'false').lower() == 'true'
        templates = ContractTemplateService.get_all(request.args.get('type'), active_only)
        return jsonify(schema_many.dump(templates)), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in list_contract_templates: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@contracts_bp.route('/contract-templates/active/<template_type>', methods=['GET'])
@roles_accepted('admin', 'driver')
def get_active_contract_template(template_type):
    try:
        return jsonify(schema.dump(ContractTemplateService.get_active(template_type))), 200
    except NotFoundError as nf:
        return jsonify({'error': nf.message}), 404
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in get_active_contract_template: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@contracts_bp.route('/contract-templates/<int:template_id>', methods=['GET'])
@roles_accepted('admin')
def get_contract_template(template_id):
    template = ContractTemplateService.get_by_id(template_id)
    if not template:
        return jsonify({'error': 'Contract template not found'}), 404
    return jsonify(schema.dump(template)), 200

@contracts_bp.route('/contract-templates', methods=['POST'])
@roles_accepted('admin')
def create_contract_template():
    """Register a new template version; it becomes the active one for its type."""
    try:
        data = request.get_json() or {}
        errors = schema.validate(data)
        if errors:
            return jsonify(errors), 400
        template = ContractTemplateService.create(data, user_id=current_user.id)
        return jsonify(schema.dump(template)), 201
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in create_contract_template: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@contracts_bp.route('/contract-templates/<int:template_id>', methods=['PUT'])
@roles_accepted('admin')
def update_contract_template(template_id):
    try:
        data = request.get_json() or {}
        errors = schema.validate(data, partial=True)
        if errors:
            return jsonify(errors), 400
        template = ContractTemplateService.update(template_id, data)
        if not template:
            return jsonify({'error': 'Contract template not found'}), 404
        return jsonify(schema.dump(template)), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in update_contract_template: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@contracts_bp.route('/contract-templates/<int:template_id>', methods=['DELETE'])
@roles_accepted('admin')
def delete_contract_template(template_id):
    try:
        if not ContractTemplateService.delete(template_id):
            return jsonify({'error': 'Contract template not found'}), 404
        return jsonify({'message': 'Contract template deleted'}), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in delete_contract_template: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
