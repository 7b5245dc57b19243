from flask import Blueprint, request, jsonify
from flask_security import roles_accepted, current_user
import logging
from frota360.services.weekly_processor import WeeklyProcessor
from frota360.services.affiliate_commission import AffiliateCommissionService
from frota360.services.errors import ServiceError, NotFoundError

weekly_bp = Blueprint('weekly', __name__)

def _flag(value):
    return str(value).lower() in ('1', 'true', 'yes')

@weekly_bp.route('/weekly/records', methods=['GET'])
@roles_accepted('admin')
def get_weekly_records():
    try:
        week_id = request.args.get('weekId')
        if not week_id:
            return jsonify({'error': 'weekId is required'}), 400
        records = WeeklyProcessor.get_processed_weekly_records(
            week_id,
            driver_id=request.args.get('driverId', type=int),
            force_refresh=_flag(request.args.get('force', 'false')),
        )
        return jsonify({'week_id': week_id, 'records': records}), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in get_weekly_records: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@weekly_bp.route('/weekly/process', methods=['POST'])
@roles_accepted('admin')
def process_week():
    try:
        data = request.get_json() or {}
        week_id = data.get('weekId') or data.get('week_id')
        if not week_id:
            return jsonify({'error': 'weekId is required'}), 400
        results = WeeklyProcessor.process_week(week_id, user_id=current_user.id)
        return jsonify({
            'week_id': week_id,
            'processed': sum(1 for r in results if r['success']),
            'skipped': sum(1 for r in results if not r['success']),
            'results': results,
        }), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in process_week: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@weekly_bp.route('/weekly/available', methods=['GET'])
@roles_accepted('admin')
def available_weeks():
    try:
        limit = min(max(1, request.args.get('limit', 10, type=int)), 52)
        return jsonify({'weeks': WeeklyProcessor.get_available_week_ids(limit)}), 200
    except Exception as e:
        logging.error(f"Unhandled error in available_weeks: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@weekly_bp.route('/affiliate-bonuses/compute', methods=['POST'])
@roles_accepted('admin')
def compute_affiliate_bonuses():
    try:
        data = request.get_json() or {}
        week_id = data.get('weekId') or data.get('week_id')
        if not week_id:
            return jsonify({'error': 'weekId is required'}), 400
        return jsonify(AffiliateCommissionService.compute_for_week(week_id)), 200
    except NotFoundError as nf:
        return jsonify({'error': nf.message}), 404
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in compute_affiliate_bonuses: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
