from flask import Blueprint, request, jsonify
from flask_security import roles_accepted
import logging
from frota360.extensions import db
from frota360.services.commission_rule_service import CommissionRuleService
from frota360.services.errors import ServiceError
from frota360.schemas.commission_rule_schema import CommissionRuleSchema

commission_bp = Blueprint('commission', __name__)
schema = CommissionRuleSchema(session=db.session)
schema_many = CommissionRuleSchema(many=True, session=db.session)

@commission_bp.route('/commission-rules', methods=['GET'])
@roles_accepted('admin')
def list_commission_rules():
    try:
        active_only = request.args.get('active', 'false').lower() == 'true'
        return jsonify(schema_many.dump(CommissionRuleService.get_all(active_only))), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in list_commission_rules: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@commission_bp.route('/commission-rules', methods=['POST'])
@roles_accepted('admin')
def create_commission_rule():
    try:
        data = request.get_json() or {}
        errors = schema.validate(data)
        if errors:
            return jsonify(errors), 400
        rule = CommissionRuleService.create(data)
        return jsonify(schema.dump(rule)), 201
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in create_commission_rule: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@commission_bp.route('/commission-rules/<int:rule_id>', methods=['PUT'])
@roles_accepted('admin')
def update_commission_rule(rule_id):
    try:
        data = request.get_json() or {}
        errors = schema.validate(data, partial=True)
        if errors:
            return jsonify(errors), 400
        rule = CommissionRuleService.update(rule_id, data)
        if not rule:
            return jsonify({'error': 'Commission rule not found'}), 404
        return jsonify(schema.dump(rule)), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in update_commission_rule: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@commission_bp.route('/commission-rules/<int:rule_id>', methods=['DELETE'])
@roles_accepted('admin')
def delete_commission_rule(rule_id):
    try:
        if not CommissionRuleService.delete(rule_id):
            return jsonify({'error': 'Commission rule not found'}), 404
        return jsonify({'message': 'Commission rule deactivated'}), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in delete_commission_rule: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
