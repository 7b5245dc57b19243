"""
Weekly earnings pipeline.

Turns the normalized platform lines of a week into one record per driver:

    1. aggregate uber, bolt, fuel, tolls and trips per driver
    2. gross, VAT and expenses (rent and tolls only for renters, financing)
    3. admin fee (type rule, driver override, exemption)
    4. pre-bonus net
    5. multi-level affiliate commissions over every driver's step 4 figures
    6. goal, referral and commission-rule bonuses
    7. repasse = pre-bonus net + all bonuses
"""
import copy
import logging
from flask import current_app

from frota360.extensions import db
from frota360.models.driver import Driver
from frota360.models.driver_payment import DriverPayment
from frota360.models.weekly_normalized_data import WeeklyNormalizedData
from frota360.services.admin_fee import compute_admin_fee_for_driver, is_fee_exempt
from frota360.services.affiliate_commission import (
    AffiliateCommissionService,
    calculate_commission_base,
    compute_affiliate_commissions,
)
from frota360.services.aggregation import DriverLookup
from frota360.services.audit_service import AuditService
from frota360.services.bonus_service import BonusService
from frota360.services.errors import ServiceError
from frota360.services.financing_service import FinancingService, calculate_financing_details
from frota360.services.settings_service import SettingsService
from frota360.services.week_service import WeekService
from frota360.utils.timezone_utils import get_week_dates, is_valid_week_id

logger = logging.getLogger(__name__)

# Record fields copied onto DriverPayment columns
PAYMENT_FIELDS = (
    'uber_total', 'bolt_total', 'trips', 'ganhos_total', 'iva_valor', 'ganhos_menos_iva',
    'despesas_adm', 'combustivel', 'viaverde', 'aluguel', 'total_despesas',
    'bonus_metas', 'bonus_referral', 'commission_amount', 'affiliate_commission', 'repasse',
)


def _vat_rate():
    try:
        return current_app.config.get('VAT_RATE', 0.06)
    except RuntimeError:
        return 0.06


def build_base_record(driver, week_id, week_start, week_end, totals, financings,
                      admin_fee_config, financial_config, vat_rate=0.06):
    """Steps 2 to 4 for one driver: everything that does not depend on other drivers."""
    ganhos_total = round(totals['uber'] + totals['bolt'], 2)
    iva_valor = round(ganhos_total * vat_rate, 2)
    ganhos_menos_iva = round(ganhos_total - iva_valor, 2)

    combustivel = round(totals['myprio'], 2)
    viaverde_raw = round(totals['viaverde'], 2)
    viaverde = viaverde_raw if driver.is_renter else 0.0
    aluguel = round(driver.rental_fee or 0.0, 2) if driver.is_renter else 0.0

    financing = calculate_financing_details(financings, week_start, week_end, financial_config['financing'])
    financing_amount = financing['weekly_with_fees']
    total_despesas = round(combustivel + viaverde + aluguel + financing_amount, 2)

    if is_fee_exempt(driver, week_start):
        admin_fee = {'fee': 0.0, 'base': None, 'base_value': 0.0, 'mode': None, 'value': 0.0,
                     'overridden': False}
        exempt = True
    else:
        ctx = {'ganhos_total': ganhos_total, 'ganhos_menos_iva': ganhos_menos_iva, 'despesas': total_despesas}
        admin_fee = compute_admin_fee_for_driver(driver, admin_fee_config, ctx, financial_config)
        exempt = False
    despesas_adm = admin_fee['fee']

    pre_bonus_net = round(ganhos_menos_iva - despesas_adm - total_despesas, 2)
    return {
        'driver_id': driver.id,
        'driver_name': driver.name,
        'driver_type': driver.type,
        'vehicle_plate': driver.vehicle_plate,
        'iban': driver.iban,
        'week_id': week_id,
        'week_start': week_start.isoformat(),
        'week_end': week_end.isoformat(),
        'uber_total': round(totals['uber'], 2),
        'bolt_total': round(totals['bolt'], 2),
        'trips': totals['trips'],
        'ganhos_total': ganhos_total,
        'iva_valor': iva_valor,
        'ganhos_menos_iva': ganhos_menos_iva,
        'despesas_adm': despesas_adm,
        'admin_fee': admin_fee,
        'admin_fee_exempt': exempt,
        'combustivel': combustivel,
        'viaverde': viaverde,
        'viaverde_total': viaverde_raw,
        'aluguel': aluguel,
        'financing': financing,
        'financing_amount': financing_amount,
        'total_despesas': total_despesas,
        'pre_bonus_net': pre_bonus_net,
        'bonus_metas': 0.0,
        'bonus_referral': 0.0,
        'commission_amount': 0.0,
        'affiliate_commission': 0.0,
        'total_bonus': 0.0,
        'repasse': pre_bonus_net,
        'platform_data': totals['platform_data'],
        'pending_bonuses': {},
        'payment_status': None,
        'payment_id': None,
    }


def apply_bonuses(record, bundle, affiliate):
    """Steps 6 and 7."""
    affiliate = affiliate or {'total': 0.0, 'details': []}
    record['bonus_metas'] = bundle['bonus_metas']
    record['bonus_referral'] = bundle['bonus_referral']
    record['commission_amount'] = bundle['commission_amount']
    record['affiliate_commission'] = affiliate['total']
    record['total_bonus'] = round(bundle['total_bonus_amount'] + affiliate['total'], 2)
    record['repasse'] = round(record['pre_bonus_net'] + record['total_bonus'], 2)
    record['pending_bonuses'] = {
        'goals': bundle['goals'],
        'referrals': bundle['referrals'],
        'commission_rules': bundle['commission_rules'],
        'affiliate': affiliate,
    }
    return record


def record_from_payment(payment):
    record = copy.deepcopy(payment.record_snapshot or {})
    record['payment_status'] = payment.payment_status
    record['payment_id'] = payment.id
    record['pending_bonuses'] = payment.pending_bonuses or {}
    record['paid_bonuses'] = payment.paid_bonuses or {}
    return record


class WeeklyProcessor:
    @staticmethod
    def aggregate_driver_totals(lines, lookup):
        totals = {}
        unmatched = []
        for line in lines:
            driver = lookup.resolve(line.platform, line.reference_id, line.driver_id, line.vehicle_plate)
            if driver is None:
                unmatched.append(line.reference_id)
                continue
            entry = totals.setdefault(driver.id, {
                'uber': 0.0, 'bolt': 0.0, 'myprio': 0.0, 'viaverde': 0.0, 'trips': 0, 'platform_data': [],
            })
            entry[line.platform] = entry.get(line.platform, 0.0) + (line.total_value or 0.0)
            if line.platform in ('uber', 'bolt'):
                entry['trips'] += line.total_trips or 0
            entry['platform_data'].append({
                'platform': line.platform,
                'reference_id': line.reference_id,
                'total_value': line.total_value,
                'total_trips': line.total_trips,
            })
        if unmatched:
            logger.warning(f"{len(unmatched)} normalized lines without driver: {unmatched[:10]}")
        return totals

    @staticmethod
    def compute_week_records(week_id):
        """Compute every driver record of a week from its normalized data."""
        week_start, week_end = get_week_dates(week_id)
        lines = WeeklyNormalizedData.query.filter_by(week_id=week_id).all()
        if not lines:
            return []

        drivers = Driver.query_active().all()
        lookup = DriverLookup(drivers)
        totals = WeeklyProcessor.aggregate_driver_totals(lines, lookup)

        admin_fee_config = SettingsService.get_admin_fee_config()
        financial_config = SettingsService.get_financial_config()
        commission_config = SettingsService.get_commission_config()
        financings = FinancingService.get_open_for_drivers(list(totals))
        vat_rate = _vat_rate()

        records = {}
        for driver_id, driver_totals in totals.items():
            records[driver_id] = build_base_record(
                lookup.by_id[driver_id], week_id, week_start, week_end, driver_totals,
                financings.get(driver_id, []), admin_fee_config, financial_config, vat_rate,
            )

        bases = {
            driver_id: calculate_commission_base(record, commission_config['base'])
            for driver_id, record in records.items()
        }
        referrer_map = {driver.id: driver.referred_by_id for driver in drivers}
        affiliate = compute_affiliate_commissions(bases, referrer_map, commission_config)

        bonus_ctx = BonusService.load_context(week_id, drivers)
        for driver_id, record in records.items():
            bundle = BonusService.calculate_all_bonuses(
                lookup.by_id[driver_id], week_start, record['ganhos_total'], record['trips'], bonus_ctx
            )
            apply_bonuses(record, bundle, affiliate.get(driver_id))

        return sorted(records.values(), key=lambda r: (r['driver_name'] or '').lower())

    @staticmethod
    def get_processed_weekly_records(week_id, driver_id=None, force_refresh=False):
        """
        Records of a week. Stored payment snapshots are returned as they are
        unless force_refresh is set.
        """
        if not week_id:
            return []
        if not is_valid_week_id(week_id):
            raise ServiceError(f"Invalid week id: {week_id}")
        try:
            if not force_refresh:
                query = DriverPayment.query.filter_by(week_id=week_id)
                if driver_id:
                    query = query.filter_by(driver_id=driver_id)
                payments = query.all()
                if payments:
                    records = [record_from_payment(p) for p in payments]
                    return sorted(records, key=lambda r: (r.get('driver_name') or '').lower())

            records = WeeklyProcessor.compute_week_records(week_id)
            if driver_id:
                records = [r for r in records if r['driver_id'] == driver_id]
            return records
        except ServiceError:
            raise
        except Exception as e:
            logging.error(f"Error computing weekly records for {week_id}: {e}", exc_info=True)
            raise ServiceError("Could not compute weekly records. Please try again later.")

    @staticmethod
    def process_week(week_id, user_id=None):
        """
        Persist pending DriverPayments for every driver of the week.
        Paid and cancelled payments are left untouched.
        """
        records = WeeklyProcessor.get_processed_weekly_records(week_id, force_refresh=True)
        results = []
        try:
            week = WeekService.ensure_week(week_id)
            existing = {p.driver_id: p for p in DriverPayment.query.filter_by(week_id=week_id).all()}
            new_payments = []
            skipped = set()
            for record in records:
                payment = existing.get(record['driver_id'])
                if payment is not None and payment.payment_status != 'pending':
                    skipped.add(record['driver_id'])
                    results.append({
                        'driver_id': record['driver_id'],
                        'driver_name': record['driver_name'],
                        'success': False,
                        'error': f"Payment already {payment.payment_status}",
                    })
                    continue
                if payment is None:
                    payment = DriverPayment(driver_id=record['driver_id'], week_id=week_id)
                    db.session.add(payment)
                    new_payments.append(payment)
                WeeklyProcessor._fill_payment(payment, record, week)
                results.append({
                    'driver_id': record['driver_id'],
                    'driver_name': record['driver_name'],
                    'success': True,
                    'repasse': record['repasse'],
                    'warnings': [] if record['ganhos_total'] > 0 else ['Sem ganhos nesta semana'],
                })

            # Drivers without data this week no longer have a payout
            processed_ids = {r['driver_id'] for r in records}
            for driver_id, payment in existing.items():
                if driver_id in processed_ids or payment.payment_status != 'pending':
                    continue
                payment.payment_status = 'cancelled'
                AuditService.record('payment_cancelled', 'driver_payment', payment.id,
                                    {'reason': 'no data on reprocess'}, user_id)
                results.append({
                    'driver_id': driver_id,
                    'driver_name': payment.driver_name,
                    'success': False,
                    'cancelled': True,
                    'error': 'No data this week, pending payment cancelled',
                })

            affiliate = {}
            for r in records:
                if r['driver_id'] in skipped:
                    paid = existing[r['driver_id']].paid_bonuses or {}
                    commission = paid.get('affiliate') or {}
                else:
                    commission = r['pending_bonuses']['affiliate']
                if commission.get('total', 0) > 0:
                    affiliate[r['driver_id']] = commission
            AffiliateCommissionService.replace_for_week(week_id, affiliate)

            # Paid rows count with the amounts that were actually paid
            payments = [
                p for p in list(existing.values()) + new_payments
                if p.payment_status in ('pending', 'paid')
            ]
            week.total_records = len(payments)
            week.total_amount = round(sum(
                p.total_amount if p.payment_status == 'paid' else p.repasse for p in payments
            ), 2)
            week.total_bonus = round(sum(
                p.bonus_metas + p.bonus_referral + p.commission_amount + p.affiliate_commission
                for p in payments
            ), 2)
            if payments and all(p.payment_status == 'paid' for p in payments):
                week.status = 'paid'
            else:
                week.status = 'processed'
            AuditService.record(
                'week_processed', 'week', week_id,
                {'records': len(records), 'total_amount': week.total_amount}, user_id
            )
            db.session.commit()
            logging.info(f"Week {week_id} processed: {len(records)} records")
            return results
        except ServiceError:
            db.session.rollback()
            raise
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error processing week {week_id}: {e}", exc_info=True)
            raise ServiceError("Could not process the week. Please try again later.")

    @staticmethod
    def _fill_payment(payment, record, week):
        payment.driver_name = record['driver_name']
        payment.driver_type = record['driver_type']
        payment.vehicle_plate = record['vehicle_plate']
        payment.iban = record['iban']
        payment.week_start = week.week_start
        payment.week_end = week.week_end
        for field in PAYMENT_FIELDS:
            setattr(payment, field, record[field])
        payment.financing_amount = record['financing_amount']
        snapshot = copy.deepcopy(record)
        snapshot.pop('pending_bonuses', None)
        snapshot['payment_status'] = 'pending'
        payment.record_snapshot = snapshot
        payment.pending_bonuses = record['pending_bonuses']
        payment.payment_status = 'pending'
        payment.base_amount = record['repasse']
        payment.base_amount_cents = int(round(record['repasse'] * 100))
        payment.total_amount = record['repasse']
        payment.total_amount_cents = payment.base_amount_cents

    @staticmethod
    def get_available_week_ids(limit=10):
        rows = (
            db.session.query(WeeklyNormalizedData.week_id)
            .distinct()
            .order_by(WeeklyNormalizedData.week_id.desc())
            .limit(limit)
            .all()
        )
        return [row[0] for row in rows]
