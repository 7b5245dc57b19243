from flask import Blueprint, request, jsonify
from flask_security import roles_accepted, current_user
import logging
from frota360.extensions import limiter
from frota360.models.driver_request import REQUEST_STATUSES
from frota360.services.driver_request_service import DriverRequestService
from frota360.services.errors import ServiceError, NotFoundError
from frota360.schemas.driver_request_schema import (
    CreateDriverRequestSchema, DriverRequestSchema, ReviewDriverRequestSchema
)

requests_bp = Blueprint('requests', __name__)
create_schema = CreateDriverRequestSchema()
review_schema = ReviewDriverRequestSchema()
schema = DriverRequestSchema()
schema_many = DriverRequestSchema(many=True)

@requests_bp.route('/requests', methods=['POST'])
@limiter.limit("3 per hour")
def create_driver_request():
    """Public signup form. No login required."""
    try:
        data = request.get_json() or {}
        errors = create_schema.validate(data)
        if errors:
            return jsonify(errors), 400
        driver_request = DriverRequestService.create(data)
        return jsonify({'message': 'Request received', 'id': driver_request.id}), 201
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in create_driver_request: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@requests_bp.route('/admin/requests', methods=['GET'])
@roles_accepted('admin')
def list_driver_requests():
    try:
        status = request.args.get('status')
        if status and status not in REQUEST_STATUSES:
            return jsonify({'error': f'Invalid status: {status}'}), 400
        return jsonify(schema_many.dump(DriverRequestService.get_all(status))), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in list_driver_requests: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

def _review(action, request_id):
    data = request.get_json(silent=True) or {}
    errors = review_schema.validate(data)
    if errors:
        return jsonify(errors), 400
    try:
        driver_request = action(request_id, user_id=current_user.id, admin_notes=data.get('admin_notes'))
        return jsonify(schema.dump(driver_request)), 200
    except NotFoundError as nf:
        return jsonify({'error': nf.message}), 404
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error reviewing driver request {request_id}: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@requests_bp.route('/admin/requests/<int:request_id>/approve', methods=['POST'])
@roles_accepted('admin')
def approve_driver_request(request_id):
    return _review(DriverRequestService.approve, request_id)

@requests_bp.route('/admin/requests/<int:request_id>/reject', methods=['POST'])
@roles_accepted('admin')
def reject_driver_request(request_id):
    return _review(DriverRequestService.reject, request_id)
