from flask import Blueprint, request, jsonify
from flask_security import roles_accepted
import logging
from frota360.extensions import db
from frota360.services.financing_service import FinancingService
from frota360.services.errors import ServiceError, NotFoundError
from frota360.schemas.financing_schema import FinancingSchema

financing_bp = Blueprint('financing', __name__)
schema = FinancingSchema(session=db.session)
schema_many = FinancingSchema(many=True, session=db.session)

@financing_bp.route('/financing', methods=['GET'])
@roles_accepted('admin')
def list_financings():
    try:
        financings = FinancingService.get_all(
            driver_id=request.args.get('driverId', type=int),
            status=request.args.get('status'),
        )
        return jsonify(schema_many.dump(financings)), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in list_financings: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@financing_bp.route('/financing/<int:financing_id>', methods=['GET'])
@roles_accepted('admin')
def get_financing(financing_id):
    try:
        financing = FinancingService.get_by_id(financing_id)
        if not financing:
            return jsonify({'error': 'Financing not found'}), 404
        return jsonify(schema.dump(financing)), 200
    except Exception as e:
        logging.error(f"Unhandled error in get_financing: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@financing_bp.route('/financing', methods=['POST'])
@roles_accepted('admin')
def create_financing():
    try:
        data = request.get_json() or {}
        errors = schema.validate(data)
        if errors:
            return jsonify(errors), 400
        financing = FinancingService.create(data)
        return jsonify(schema.dump(financing)), 201
    except NotFoundError as nf:
        return jsonify({'error': nf.message}), 404
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in create_financing: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@financing_bp.route('/financing/<int:financing_id>', methods=['PUT'])
@roles_accepted('admin')
def update_financing(financing_id):
    try:
        data = request.get_json() or {}
        errors = schema.validate(data, partial=True)
        if errors:
            return jsonify(errors), 400
        financing = FinancingService.update(financing_id, data)
        if not financing:
            return jsonify({'error': 'Financing not found'}), 404
        return jsonify(schema.dump(financing)), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in update_financing: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@financing_bp.route('/financing/<int:financing_id>', methods=['DELETE'])
@roles_accepted('admin')
def delete_financing(financing_id):
    try:
        if not FinancingService.delete(financing_id):
            return jsonify({'error': 'Financing not found'}), 404
        return jsonify({'message': 'Financing deleted'}), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in delete_financing: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
