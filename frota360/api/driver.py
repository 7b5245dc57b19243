from flask import Blueprint, request, jsonify
from flask_security import roles_accepted, current_user
import logging
from frota360.extensions import db
from frota360.services.driver_service import DriverService
from frota360.services.errors import ServiceError, NotFoundError
from frota360.schemas.driver_schema import DriverSchema, AdminFeeExemptionSchema

driver_bp = Blueprint('driver', __name__)
schema = DriverSchema(session=db.session)
schema_many = DriverSchema(many=True, session=db.session)
exemption_schema = AdminFeeExemptionSchema()

@driver_bp.route('/drivers', methods=['GET'])
@roles_accepted('admin')
def list_drivers():
    try:
        drivers = DriverService.get_all(
            status=request.args.get('status'),
            driver_type=request.args.get('type'),
        )
        return jsonify(schema_many.dump(drivers)), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in list_drivers: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@driver_bp.route('/drivers/<int:driver_id>', methods=['GET'])
@roles_accepted('admin')
def get_driver(driver_id):
    try:
        driver = DriverService.get_by_id(driver_id)
        if not driver:
            return jsonify({'error': 'Driver not found'}), 404
        return jsonify(schema.dump(driver)), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in get_driver: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@driver_bp.route('/drivers', methods=['POST'])
@roles_accepted('admin')
def create_driver():
    try:
        data = request.get_json() or {}
        errors = schema.validate(data)
        if errors:
            return jsonify(errors), 400
        driver = DriverService.create(data)
        return jsonify(schema.dump(driver)), 201
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in create_driver: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@driver_bp.route('/drivers/<int:driver_id>', methods=['PUT'])
@roles_accepted('admin')
def update_driver(driver_id):
    try:
        data = request.get_json() or {}
        errors = schema.validate(data, partial=True)
        if errors:
            return jsonify(errors), 400
        driver = DriverService.update(driver_id, data)
        if not driver:
            return jsonify({'error': 'Driver not found'}), 404
        return jsonify(schema.dump(driver)), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in update_driver: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@driver_bp.route('/drivers/<int:driver_id>', methods=['DELETE'])
@roles_accepted('admin')
def delete_driver(driver_id):
    try:
        success = DriverService.delete(driver_id)
        if not success:
            return jsonify({'error': 'Driver not found'}), 404
        return jsonify({'message': 'Driver deleted'}), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in delete_driver: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@driver_bp.route('/drivers/<int:driver_id>/soft-delete', methods=['PUT'])
@roles_accepted('admin')
def toggle_driver_soft_delete(driver_id):
    try:
        data = request.get_json() or {}
        is_deleted = data.get('is_deleted', True)
        driver = DriverService.toggle_soft_delete(driver_id, is_deleted)
        if not driver:
            return jsonify({'error': 'Driver not found'}), 404
        return jsonify({
            'message': f'Driver {"deleted" if is_deleted else "restored"} successfully',
            'driver': schema.dump(driver)
        }), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in toggle_driver_soft_delete: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@driver_bp.route('/drivers/<int:driver_id>/approve', methods=['POST'])
@roles_accepted('admin')
def approve_driver(driver_id):
    try:
        driver = DriverService.approve(driver_id, user_id=current_user.id)
        return jsonify(schema.dump(driver)), 200
    except NotFoundError as nf:
        return jsonify({'error': nf.message}), 404
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in approve_driver: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@driver_bp.route('/drivers/<int:driver_id>/admin-fee-exemption', methods=['GET'])
@roles_accepted('admin')
def get_admin_fee_exemption(driver_id):
    try:
        return jsonify(DriverService.get_admin_fee_exemption(driver_id)), 200
    except NotFoundError as nf:
        return jsonify({'error': nf.message}), 404
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in get_admin_fee_exemption: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@driver_bp.route('/drivers/<int:driver_id>/admin-fee-exemption', methods=['PUT'])
@roles_accepted('admin')
def set_admin_fee_exemption(driver_id):
    try:
        data = request.get_json() or {}
        errors = exemption_schema.validate(data)
        if errors:
            return jsonify(errors), 400
        status = DriverService.set_admin_fee_exemption(
            driver_id, data['start_date'], data['weeks'], data.get('reason'), user_id=current_user.id
        )
        return jsonify(status), 200
    except NotFoundError as nf:
        return jsonify({'error': nf.message}), 404
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in set_admin_fee_exemption: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@driver_bp.route('/drivers/<int:driver_id>/admin-fee-exemption', methods=['DELETE'])
@roles_accepted('admin')
def clear_admin_fee_exemption(driver_id):
    try:
        return jsonify(DriverService.clear_admin_fee_exemption(driver_id, user_id=current_user.id)), 200
    except NotFoundError as nf:
        return jsonify({'error': nf.message}), 404
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in clear_admin_fee_exemption: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
