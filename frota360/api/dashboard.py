from flask import Blueprint, request, jsonify
from flask_security import roles_accepted
import logging
from frota360.services.dashboard_service import DashboardService
from frota360.services.errors import ServiceError

dashboard_bp = Blueprint('dashboard', __name__)

@dashboard_bp.route('/dashboard/stats', methods=['GET'])
@roles_accepted('admin')
def dashboard_stats():
    try:
        return jsonify(DashboardService.get_dashboard_stats(request.args.get('weekId'))), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in dashboard_stats: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
