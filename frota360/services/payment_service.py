import io
import logging
from datetime import datetime

import pandas as pd

from frota360.extensions import db
from frota360.models.driver_payment import DriverPayment
from frota360.models.week import Week
from frota360.services.audit_service import AuditService
from frota360.services.bonus_service import BonusService
from frota360.services.errors import ServiceError, NotFoundError
from frota360.services.financing_service import FinancingService
from frota360.services.settings_service import SettingsService
from frota360.utils.timezone_utils import format_week_label

EXPORT_COLUMNS = [
    ('driver_name', 'Motorista'),
    ('driver_type', 'Tipo'),
    ('vehicle_plate', 'Matrícula'),
    ('iban', 'IBAN'),
    ('week_id', 'Semana'),
    ('uber_total', 'Uber'),
    ('bolt_total', 'Bolt'),
    ('ganhos_total', 'Ganhos Brutos'),
    ('iva_valor', 'IVA'),
    ('ganhos_menos_iva', 'Ganhos - IVA'),
    ('despesas_adm', 'Taxa Adm'),
    ('combustivel', 'Combustível'),
    ('viaverde', 'Portagens'),
    ('aluguel', 'Aluguel'),
    ('financing_amount', 'Financiamento'),
    ('bonus_metas', 'Bónus Metas'),
    ('bonus_referral', 'Bónus Indicação'),
    ('commission_amount', 'Comissão'),
    ('affiliate_commission', 'Comissão Afiliados'),
    ('repasse', 'Repasse'),
    ('bonus_amount', 'Bónus Pagamento'),
    ('discount_amount', 'Desconto'),
    ('total_amount', 'Total Pago'),
    ('payment_status', 'Estado'),
]


def to_cents(value):
    return int(round(float(value or 0.0) * 100))


def serialize_payment(payment):
    return {
        'id': payment.id,
        'driver_id': payment.driver_id,
        'driver_name': payment.driver_name,
        'driver_type': payment.driver_type,
        'vehicle_plate': payment.vehicle_plate,
        'iban': payment.iban,
        'week_id': payment.week_id,
        'week_label': format_week_label(payment.week_id),
        'ganhos_total': payment.ganhos_total,
        'despesas_adm': payment.despesas_adm,
        'total_despesas': payment.total_despesas,
        'repasse': payment.repasse,
        'payment_status': payment.payment_status,
        'base_amount': payment.base_amount,
        'bonus_amount': payment.bonus_amount,
        'discount_amount': payment.discount_amount,
        'total_amount': payment.total_amount,
        'total_amount_cents': payment.total_amount_cents,
        'payment_date': payment.payment_date.isoformat() if payment.payment_date else None,
        'notes': payment.notes,
        'proof_file_name': payment.proof_file_name,
        'proof_url': payment.proof_url,
    }


class PaymentService:
    @staticmethod
    def list_week_payments(week_id):
        try:
            return DriverPayment.query.filter_by(week_id=week_id).order_by(DriverPayment.driver_name).all()
        except Exception as e:
            logging.error(f"Error fetching payments for {week_id}: {e}", exc_info=True)
            raise ServiceError("Could not fetch payments. Please try again later.")

    @staticmethod
    def get_driver_payments(driver_id, limit=52):
        return (
            DriverPayment.query.filter_by(driver_id=driver_id)
            .order_by(DriverPayment.week_id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def mark_paid(driver_id, week_id, data=None, user_id=None):
        data = data or {}
        payment = DriverPayment.query.filter_by(driver_id=driver_id, week_id=week_id).first()
        if payment is None:
            raise NotFoundError("Payment record not found. Process the week first.")
        if payment.payment_status == 'paid':
            raise ServiceError("Payment already marked as paid")
        if payment.payment_status == 'cancelled':
            raise ServiceError("Payment was cancelled")

        try:
            bonus = max(0.0, float(data.get('bonus_amount') or 0.0))
            discount = max(0.0, float(data.get('discount_amount') or 0.0))
        except (TypeError, ValueError):
            raise ServiceError("Invalid bonus or discount amount")

        try:
            payment.base_amount_cents = to_cents(payment.repasse)
            payment.bonus_amount_cents = to_cents(bonus)
            payment.discount_amount_cents = to_cents(discount)
            payment.total_amount_cents = (
                payment.base_amount_cents + payment.bonus_amount_cents - payment.discount_amount_cents
            )
            payment.base_amount = payment.base_amount_cents / 100.0
            payment.bonus_amount = payment.bonus_amount_cents / 100.0
            payment.discount_amount = payment.discount_amount_cents / 100.0
            payment.total_amount = payment.total_amount_cents / 100.0

            payment.payment_status = 'paid'
            payment.payment_date = data.get('payment_date') or datetime.utcnow()
            if isinstance(payment.payment_date, str):
                payment.payment_date = datetime.fromisoformat(payment.payment_date.replace('Z', ''))
            payment.notes = data.get('notes')
            payment.iban = data.get('iban') or payment.iban
            payment.proof_file_name = data.get('proof_file_name')
            payment.proof_url = data.get('proof_url')
            payment.paid_by = user_id

            financial_config = SettingsService.get_financial_config()
            decremented = []
            if not payment.financing_processed and financial_config['financing']['paymentDecrementDynamic']:
                decremented = FinancingService.decrement_for_payment(
                    driver_id, payment.week_start, payment.week_end, financial_config['financing']
                )
                payment.financing_processed = True

            BonusService.record_paid_bonuses(payment)
            payment.paid_bonuses = payment.pending_bonuses
            payment.pending_bonuses = {}
            snapshot = dict(payment.record_snapshot or {})
            snapshot['payment_status'] = 'paid'
            payment.record_snapshot = snapshot

            AuditService.record('payment_marked_paid', 'driver_payment', payment.id, {
                'driver_id': driver_id,
                'week_id': week_id,
                'total_amount_cents': payment.total_amount_cents,
                'financings_decremented': decremented,
            }, user_id)

            db.session.flush()
            pending_left = DriverPayment.query.filter_by(week_id=week_id, payment_status='pending').count()
            if pending_left == 0:
                week = Week.query.filter_by(week_id=week_id).first()
                if week:
                    week.status = 'paid'

            db.session.commit()
            logging.info(f"Payment {payment.id} marked paid ({payment.total_amount_cents} cents)")
            return payment
        except ServiceError:
            db.session.rollback()
            raise
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error marking payment as paid: {e}", exc_info=True)
            raise ServiceError("Could not mark payment as paid. Please try again later.")

    @staticmethod
    def cancel_payment(payment_id, user_id=None):
        payment = db.session.get(DriverPayment, payment_id)
        if payment is None:
            raise NotFoundError("Payment not found")
        if payment.payment_status != 'pending':
            raise ServiceError(f"Cannot cancel a payment with status: {payment.payment_status}")
        try:
            payment.payment_status = 'cancelled'
            AuditService.record('payment_cancelled', 'driver_payment', payment.id, None, user_id)
            db.session.commit()
            return payment
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error cancelling payment: {e}", exc_info=True)
            raise ServiceError("Could not cancel payment. Please try again later.")

    @staticmethod
    def get_payout_summary(week_id=None):
        query = DriverPayment.query.filter(DriverPayment.payment_status != 'cancelled')
        if week_id:
            query = query.filter_by(week_id=week_id)
        payments = query.all()
        paid = [p for p in payments if p.payment_status == 'paid']
        pending = [p for p in payments if p.payment_status == 'pending']
        paid_amount = round(sum(p.total_amount for p in paid), 2)
        pending_amount = round(sum(p.repasse for p in pending), 2)
        total = round(paid_amount + pending_amount, 2)
        return {
            'week_id': week_id,
            'total_payouts': len(payments),
            'total_amount': total,
            'paid_count': len(paid),
            'paid_amount': paid_amount,
            'pending_count': len(pending),
            'pending_amount': pending_amount,
            'average_amount': round(total / len(payments), 2) if payments else 0.0,
        }

    @staticmethod
    def export_payments_csv(week_id):
        payments = PaymentService.list_week_payments(week_id)
        rows = [
            {label: getattr(payment, field) for field, label in EXPORT_COLUMNS}
            for payment in payments
        ]
        df = pd.DataFrame(rows, columns=[label for _, label in EXPORT_COLUMNS])
        buffer = io.StringIO()
        df.to_csv(buffer, index=False, sep=';', decimal=',', float_format='%.2f')
        return buffer.getvalue()
