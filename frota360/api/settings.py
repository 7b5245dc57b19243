import logging
from flask import Blueprint, request, jsonify
from flask_security import roles_accepted, current_user
from frota360.services.settings_service import (
    SettingsService,
    ADMIN_FEE_KEY,
    FINANCIAL_KEY,
    COMMISSION_KEY,
    REFERRAL_KEY,
    GOALS_KEY,
)
from frota360.services.errors import ServiceError
from frota360.schemas.settings_schema import (
    AdminFeeConfigSchema,
    FinancialConfigSchema,
    CommissionConfigSchema,
    ReferralConfigSchema,
    GoalsConfigSchema,
)

settings_bp = Blueprint('settings', __name__)

# URL segment -> (settings key, payload schema)
SETTINGS_ENDPOINTS = {
    'admin-fee': (ADMIN_FEE_KEY, AdminFeeConfigSchema()),
    'financial': (FINANCIAL_KEY, FinancialConfigSchema()),
    'commission': (COMMISSION_KEY, CommissionConfigSchema()),
    'referral': (REFERRAL_KEY, ReferralConfigSchema()),
    'goals': (GOALS_KEY, GoalsConfigSchema()),
}

@settings_bp.route('/settings/<name>', methods=['GET'])
@roles_accepted('admin')
def get_settings(name):
    if name not in SETTINGS_ENDPOINTS:
        return jsonify({'error': 'Unknown settings section'}), 404
    try:
        key, _ = SETTINGS_ENDPOINTS[name]
        return jsonify(SettingsService.get(key)), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in get_settings: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@settings_bp.route('/settings/<name>', methods=['PUT'])
@roles_accepted('admin')
def update_settings(name):
    if name not in SETTINGS_ENDPOINTS:
        return jsonify({'error': 'Unknown settings section'}), 404
    try:
        key, schema = SETTINGS_ENDPOINTS[name]
        data = request.get_json() or {}
        errors = schema.validate(data)
        if errors:
            return jsonify(errors), 400
        value = SettingsService.update(key, data, user_id=current_user.id)
        return jsonify(value), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in update_settings: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
