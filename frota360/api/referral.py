from flask import Blueprint, request, jsonify
from flask_security import roles_accepted, current_user
import logging
from frota360.extensions import db
from frota360.services.referral_service import ReferralService, ReferralRuleService
from frota360.services.errors import ServiceError, NotFoundError
from frota360.schemas.referral_schema import (
    ReferralRuleSchema,
    ReferralInviteSchema,
    CreateInviteSchema,
    AcceptInviteSchema,
)

referral_bp = Blueprint('referral', __name__)
rule_schema = ReferralRuleSchema(session=db.session)
rule_schema_many = ReferralRuleSchema(many=True, session=db.session)
invite_schema = ReferralInviteSchema()
invite_schema_many = ReferralInviteSchema(many=True)
create_invite_schema = CreateInviteSchema()
accept_invite_schema = AcceptInviteSchema()

def _acting_driver_id(requested_id):
    """Admins act on any driver; drivers only on themselves."""
    if current_user.has_role('admin') and requested_id:
        return requested_id
    return current_user.driver_id

@referral_bp.route('/referral-rules', methods=['GET'])
@roles_accepted('admin')
def list_referral_rules():
    try:
        return jsonify(rule_schema_many.dump(ReferralRuleService.get_all())), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in list_referral_rules: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@referral_bp.route('/referral-rules', methods=['POST'])
@roles_accepted('admin')
def create_referral_rule():
    try:
        data = request.get_json() or {}
        errors = rule_schema.validate(data)
        if errors:
            return jsonify(errors), 400
        return jsonify(rule_schema.dump(ReferralRuleService.create(data))), 201
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in create_referral_rule: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@referral_bp.route('/referral-rules/<int:rule_id>', methods=['PUT'])
@roles_accepted('admin')
def update_referral_rule(rule_id):
    try:
        data = request.get_json() or {}
        errors = rule_schema.validate(data, partial=True)
        if errors:
            return jsonify(errors), 400
        rule = ReferralRuleService.update(rule_id, data)
        if not rule:
            return jsonify({'error': 'Referral rule not found'}), 404
        return jsonify(rule_schema.dump(rule)), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in update_referral_rule: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@referral_bp.route('/referral-rules/<int:rule_id>', methods=['DELETE'])
@roles_accepted('admin')
def delete_referral_rule(rule_id):
    try:
        if not ReferralRuleService.delete(rule_id):
            return jsonify({'error': 'Referral rule not found'}), 404
        return jsonify({'message': 'Referral rule deleted'}), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in delete_referral_rule: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@referral_bp.route('/referrals/invites', methods=['POST'])
@roles_accepted('admin', 'driver')
def create_invite():
    try:
        data = request.get_json() or {}
        errors = create_invite_schema.validate(data)
        if errors:
            return jsonify(errors), 400
        referrer_id = _acting_driver_id(data.get('referrer_id'))
        if not referrer_id:
            return jsonify({'error': 'referrer_id is required'}), 400
        invite = ReferralService.create_invite(referrer_id, data.get('email'), data.get('phone'))
        return jsonify(invite_schema.dump(invite)), 201
    except NotFoundError as nf:
        return jsonify({'error': nf.message}), 404
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in create_invite: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@referral_bp.route('/referrals/invites', methods=['GET'])
@roles_accepted('admin', 'driver')
def list_invites():
    try:
        referrer_id = _acting_driver_id(request.args.get('referrerId', type=int))
        if not referrer_id:
            return jsonify({'error': 'referrerId is required'}), 400
        invites = ReferralService.list_invites(referrer_id, request.args.get('status'))
        return jsonify(invite_schema_many.dump(invites)), 200
    except Exception as e:
        logging.error(f"Unhandled error in list_invites: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@referral_bp.route('/referrals/accept', methods=['POST'])
@roles_accepted('admin', 'driver')
def accept_invite():
    try:
        data = request.get_json() or {}
        errors = accept_invite_schema.validate(data)
        if errors:
            return jsonify(errors), 400
        driver_id = _acting_driver_id(data.get('driver_id'))
        if not driver_id:
            return jsonify({'error': 'driver_id is required'}), 400
        invite = ReferralService.accept_invite(data['invite_code'], driver_id)
        return jsonify(invite_schema.dump(invite)), 200
    except NotFoundError as nf:
        return jsonify({'error': nf.message}), 404
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in accept_invite: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@referral_bp.route('/referrals/network/<int:driver_id>', methods=['GET'])
@roles_accepted('admin')
def affiliate_network(driver_id):
    try:
        return jsonify(ReferralService.get_affiliate_network(driver_id)), 200
    except NotFoundError as nf:
        return jsonify({'error': nf.message}), 404
    except Exception as e:
        logging.error(f"Unhandled error in affiliate_network: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
