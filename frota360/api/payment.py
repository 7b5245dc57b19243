from flask import Blueprint, Response, request, jsonify
from flask_security import roles_accepted, current_user
import logging
from frota360.services.payment_service import PaymentService, serialize_payment
from frota360.services.errors import ServiceError, NotFoundError
from frota360.schemas.payment_schema import MarkPaidSchema

payment_bp = Blueprint('payment', __name__)
mark_paid_schema = MarkPaidSchema()

@payment_bp.route('/weekly/payments', methods=['GET'])
@roles_accepted('admin')
def list_week_payments():
    try:
        week_id = request.args.get('weekId')
        if not week_id:
            return jsonify({'error': 'weekId is required'}), 400
        payments = PaymentService.list_week_payments(week_id)
        return jsonify([serialize_payment(p) for p in payments]), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in list_week_payments: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@payment_bp.route('/weekly/payments', methods=['POST'])
@roles_accepted('admin')
def mark_payment_paid():
    try:
        payload = request.get_json() or {}
        errors = mark_paid_schema.validate(payload)
        if errors:
            return jsonify(errors), 400
        data = mark_paid_schema.load(payload)
        payment = PaymentService.mark_paid(
            data.pop('driver_id'), data.pop('week_id'), data, user_id=current_user.id
        )
        return jsonify(serialize_payment(payment)), 200
    except NotFoundError as nf:
        return jsonify({'error': nf.message}), 404
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in mark_payment_paid: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@payment_bp.route('/payments/<int:payment_id>/cancel', methods=['POST'])
@roles_accepted('admin')
def cancel_payment(payment_id):
    try:
        payment = PaymentService.cancel_payment(payment_id, user_id=current_user.id)
        return jsonify(serialize_payment(payment)), 200
    except NotFoundError as nf:
        return jsonify({'error': nf.message}), 404
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in cancel_payment: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@payment_bp.route('/payouts/summary', methods=['GET'])
@roles_accepted('admin')
def payout_summary():
    try:
        return jsonify(PaymentService.get_payout_summary(request.args.get('weekId'))), 200
    except Exception as e:
        logging.error(f"Unhandled error in payout_summary: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@payment_bp.route('/weekly/export-payments', methods=['GET'])
@roles_accepted('admin')
def export_payments():
    try:
        week_id = request.args.get('weekId')
        if not week_id:
            return jsonify({'error': 'weekId is required'}), 400
        csv_data = PaymentService.export_payments_csv(week_id)
        return Response(
            csv_data,
            mimetype='text/csv',
            headers={'Content-Disposition': f'attachment; filename=pagamentos_{week_id}.csv'},
        )
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in export_payments: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
