"""Driver self-service panel. Every endpoint acts on the logged-in driver."""
from flask import Blueprint, request, jsonify
from flask_security import roles_accepted, current_user
import logging
from frota360.extensions import db
from frota360.services.affiliate_commission import AffiliateCommissionService
from frota360.services.driver_service import DriverService
from frota360.services.payment_service import PaymentService, serialize_payment
from frota360.services.referral_service import ReferralService
from frota360.services.weekly_processor import WeeklyProcessor
from frota360.services.errors import ServiceError, NotFoundError
from frota360.schemas.driver_schema import DriverSchema
from frota360.utils.timezone_utils import get_previous_week_id, get_week_id

painel_bp = Blueprint('painel', __name__)
driver_schema = DriverSchema(session=db.session)

def _current_driver():
    driver_id = getattr(current_user, 'driver_id', None)
    if not driver_id:
        return None
    return DriverService.get_by_id(driver_id)

@painel_bp.route('/painel/me', methods=['GET'])
@roles_accepted('driver')
def me():
    try:
        driver = _current_driver()
        if not driver:
            return jsonify({'error': 'Driver profile not found'}), 404
        profile = driver_schema.dump(driver)
        profile['network'] = ReferralService.get_affiliate_network(driver.id)
        return jsonify(profile), 200
    except NotFoundError as nf:
        return jsonify({'error': nf.message}), 404
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in painel me: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@painel_bp.route('/painel/weekly-summary', methods=['GET'])
@roles_accepted('driver')
def weekly_summary():
    try:
        driver = _current_driver()
        if not driver:
            return jsonify({'error': 'Driver profile not found'}), 404
        # Default to the last closed week
        week_id = request.args.get('weekId') or get_previous_week_id(get_week_id())
        records = WeeklyProcessor.get_processed_weekly_records(week_id, driver_id=driver.id)
        if not records:
            return jsonify({'error': 'No data for this week', 'week_id': week_id}), 404
        return jsonify(records[0]), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in painel weekly_summary: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@painel_bp.route('/painel/commissions', methods=['GET'])
@roles_accepted('driver')
def my_commissions():
    try:
        driver = _current_driver()
        if not driver:
            return jsonify({'error': 'Driver profile not found'}), 404
        return jsonify(AffiliateCommissionService.get_for_driver(driver.id)), 200
    except Exception as e:
        logging.error(f"Unhandled error in painel commissions: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@painel_bp.route('/painel/payments', methods=['GET'])
@roles_accepted('driver')
def my_payments():
    try:
        driver = _current_driver()
        if not driver:
            return jsonify({'error': 'Driver profile not found'}), 404
        payments = PaymentService.get_driver_payments(driver.id)
        return jsonify([serialize_payment(p) for p in payments]), 200
    except Exception as e:
        logging.error(f"Unhandled error in painel payments: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
