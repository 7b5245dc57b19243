"""Import, weekly processing and payout of one week, end to end."""
from datetime import date

import pytest

from frota360.models.affiliate_bonus import AffiliateBonus
from frota360.models.bonus_history import BonusHistory
from frota360.models.commission_rule import CommissionRule
from frota360.models.driver_payment import DriverPayment
from frota360.models.financing import Financing
from frota360.models.week import Week
from frota360.models.weekly_normalized_data import WeeklyNormalizedData
from frota360.schemas.payment_schema import MarkPaidSchema
from frota360.services.driver_service import DriverService
from frota360.services.errors import ServiceError, NotFoundError
from frota360.services.import_service import ImportService
from frota360.services.payment_service import PaymentService
from frota360.services.weekly_processor import WeeklyProcessor

WEEK = '2025-W43'


@pytest.fixture
def fleet(make_driver):
    ana = make_driver(name='Ana', type='affiliate', uber_key='U-ANA', email='ana@conduz.pt', iban='PT50000201231234567890154')
    bruno = make_driver(name='Bruno', type='renter', uber_key='U-BRUNO', bolt_key='bruno@conduz.pt',
                        vehicle_plate='AA-11-BB', rental_fee=200.0, referred_by_id=ana.id)
    return ana, bruno


def import_week(rows=None, week=WEEK):
    rows = rows or {
        'uber': [
            {'UUID do motorista': 'u-ana', 'Pago a si': '700,00', 'Viagens': 20},
            {'UUID do motorista': 'U-BRUNO', 'Pago a si': '500,00', 'Viagens': 15},
        ],
        'bolt': [{'Email': 'bruno@conduz.pt', 'Ganhos brutos (total)': '500', 'Viagens (total)': 10}],
        'myprio': [{'DESC CARTAO': 'AA11BB', 'TOTAL': '50'}],
        'viaverde': [{'Matrícula': 'AA-11-BB', 'Value': '20'}],
    }
    raw_ids = [
        ImportService.archive_rows(platform, week, f"{platform}.xlsx", platform_rows).id
        for platform, platform_rows in rows.items()
    ]
    return ImportService.process_import(week, raw_ids)


class TestImport:
    def test_process_import_writes_normalized_lines(self, db, fleet):
        result = import_week()
        assert result['platforms_processed'] == ['bolt', 'myprio', 'uber', 'viaverde']
        assert result['data_weekly_docs'] == 5
        assert result['warnings'] == []

        week = Week.query.filter_by(week_id=WEEK).one()
        assert week.status == 'imported'
        sources = {s.platform: s for s in week.data_sources}
        assert sources['uber'].status == 'complete'
        assert sources['uber'].drivers_count == 2

    def test_reimport_replaces_platform_lines(self, db, fleet):
        import_week()
        raw = ImportService.archive_rows('uber', WEEK, 'uber-v2.csv', [
            {'UUID do motorista': 'u-ana', 'Pago a si': '800', 'Viagens': 22},
        ])
        result = ImportService.process_import(WEEK, [raw.id])
        assert result['platforms_processed'] == ['uber']

        uber_lines = WeeklyNormalizedData.query.filter_by(week_id=WEEK, platform='uber').all()
        assert [(line.reference_id, line.total_value) for line in uber_lines] == [('u-ana', 800.0)]
        assert WeeklyNormalizedData.query.filter_by(week_id=WEEK, platform='bolt').count() == 1

    def test_unknown_raw_ids(self, db):
        with pytest.raises(NotFoundError):
            ImportService.process_import(WEEK, [123])

    def test_unknown_platform_is_rejected(self, db):
        with pytest.raises(ServiceError):
            ImportService.archive_rows('freenow', WEEK, 'x.csv', [])

    def test_week_53_of_a_52_week_year_is_rejected(self, db, fleet):
        with pytest.raises(ServiceError, match='Invalid week id'):
            ImportService.archive_rows('uber', '2025-W53', 'uber.csv', [])
        with pytest.raises(ServiceError):
            WeeklyProcessor.process_week('2025-W53')
        assert Week.query.count() == 0
        assert 'week_id' in MarkPaidSchema().validate({'driver_id': 1, 'week_id': '2025-W53'})
        assert MarkPaidSchema().validate({'driver_id': 1, 'week_id': '2026-W53'}) == {}


class TestWeeklyRecords:
    def test_driver_figures(self, db, fleet):
        ana, bruno = fleet
        import_week()
        records = {r['driver_id']: r for r in WeeklyProcessor.get_processed_weekly_records(WEEK)}

        b = records[bruno.id]
        assert b['ganhos_total'] == 1000.0
        assert b['iva_valor'] == 60.0
        assert b['ganhos_menos_iva'] == 940.0
        assert b['trips'] == 25
        assert b['combustivel'] == 50.0
        assert b['viaverde'] == 20.0
        assert b['aluguel'] == 200.0
        assert b['despesas_adm'] == 37.6
        assert b['total_despesas'] == 270.0
        assert b['repasse'] == 632.4

        a = records[ana.id]
        assert a['despesas_adm'] == 25.0
        assert a['pre_bonus_net'] == 633.0
        assert a['affiliate_commission'] == pytest.approx(12.65, abs=0.01)
        assert a['repasse'] == pytest.approx(645.65, abs=0.01)
        # Bruno has no paid weeks yet: progress line only
        referral = a['pending_bonuses']['referrals'][0]
        assert referral['eligible'] is False and referral['amount'] == 0.0

    def test_exempt_driver_pays_no_fee(self, db, fleet):
        _, bruno = fleet
        bruno.fee_exempt_start = date(2025, 10, 13)
        bruno.fee_exempt_weeks = 2
        db.session.commit()
        import_week()
        record = WeeklyProcessor.get_processed_weekly_records(WEEK, driver_id=bruno.id)[0]
        assert record['admin_fee_exempt'] is True
        assert record['despesas_adm'] == 0.0

    def test_financing_is_an_expense(self, db, fleet):
        ana, _ = fleet
        db.session.add(Financing(driver_id=ana.id, type='loan', amount=100.0, weeks=4, remaining_weeks=4,
                                 weekly_interest=10.0))
        db.session.commit()
        import_week()
        record = WeeklyProcessor.get_processed_weekly_records(WEEK, driver_id=ana.id)[0]
        assert record['financing_amount'] == 27.5
        assert record['total_despesas'] == 27.5

    def test_invalid_week_id(self, db):
        with pytest.raises(ServiceError):
            WeeklyProcessor.get_processed_weekly_records('2025-43')

    def test_week_without_data(self, db):
        assert WeeklyProcessor.get_processed_weekly_records('2024-W01') == []


class TestPayments:
    def test_process_and_pay_week(self, db, fleet):
        ana, bruno = fleet
        import_week()
        results = WeeklyProcessor.process_week(WEEK)
        assert all(r['success'] for r in results)

        week = Week.query.filter_by(week_id=WEEK).one()
        assert week.status == 'processed'
        assert AffiliateBonus.query.filter_by(week_id=WEEK, indicator_id=ana.id).count() == 1

        payment = PaymentService.mark_paid(bruno.id, WEEK, {'bonus_amount': 10, 'discount_amount': 5})
        assert payment.total_amount_cents == 63240 + 1000 - 500
        assert payment.total_amount == 637.4
        assert week.status == 'processed'

        with pytest.raises(ServiceError):
            PaymentService.mark_paid(bruno.id, WEEK)

        PaymentService.mark_paid(ana.id, WEEK)
        assert week.status == 'paid'
        assert BonusHistory.query.filter_by(driver_id=ana.id, kind='affiliate').count() == 1

        # Paid weeks are served from their snapshots
        records = WeeklyProcessor.get_processed_weekly_records(WEEK)
        assert {r['payment_status'] for r in records} == {'paid'}

        # Reprocessing leaves paid payments alone
        results = WeeklyProcessor.process_week(WEEK)
        assert not any(r['success'] for r in results)

    def test_paid_loan_installment_is_decremented(self, db, fleet):
        ana, _ = fleet
        loan = Financing(driver_id=ana.id, type='loan', amount=100.0, weeks=2, remaining_weeks=2)
        db.session.add(loan)
        db.session.commit()
        import_week()
        WeeklyProcessor.process_week(WEEK)
        payment = PaymentService.mark_paid(ana.id, WEEK)
        assert payment.financing_processed is True
        assert loan.remaining_weeks == 1

    def test_mark_paid_requires_processed_week(self, db, fleet):
        with pytest.raises(NotFoundError):
            PaymentService.mark_paid(fleet[0].id, WEEK)

    def test_cancel_only_pending(self, db, fleet):
        ana, _ = fleet
        import_week()
        WeeklyProcessor.process_week(WEEK)
        payment = PaymentService.mark_paid(ana.id, WEEK)
        with pytest.raises(ServiceError):
            PaymentService.cancel_payment(payment.id)

    def test_summary_and_export(self, db, fleet):
        ana, bruno = fleet
        import_week()
        WeeklyProcessor.process_week(WEEK)
        PaymentService.mark_paid(bruno.id, WEEK)

        summary = PaymentService.get_payout_summary(WEEK)
        assert summary['paid_count'] == 1
        assert summary['pending_count'] == 1
        assert summary['paid_amount'] == 632.4

        csv_text = PaymentService.export_payments_csv(WEEK)
        header, *lines = csv_text.strip().splitlines()
        assert header.startswith('Motorista;Tipo;Matrícula;IBAN;Semana')
        assert len(lines) == 2
        assert '632,40' in lines[1]


NEXT_WEEK = '2025-W44'


def payment_of(driver, week_id):
    return DriverPayment.query.filter_by(driver_id=driver.id, week_id=week_id).one()


class TestBonusesAcrossPendingWeeks:
    @pytest.fixture
    def bruno_has_four_paid_weeks(self, fleet, make_payment):
        _, bruno = fleet
        for week in ('2025-W38', '2025-W39', '2025-W40', '2025-W41'):
            make_payment(bruno, week, payment_status='paid')
        return fleet

    def test_referral_bonus_lands_in_one_week_only(self, db, bruno_has_four_paid_weeks):
        ana, bruno = bruno_has_four_paid_weeks
        import_week()
        import_week(week=NEXT_WEEK)
        WeeklyProcessor.process_week(WEEK)
        WeeklyProcessor.process_week(NEXT_WEEK)

        assert payment_of(ana, WEEK).bonus_referral == 50.0
        assert payment_of(ana, NEXT_WEEK).bonus_referral == 0.0
        assert payment_of(ana, NEXT_WEEK).pending_bonuses['referrals'] == []

        PaymentService.mark_paid(ana.id, WEEK)
        PaymentService.mark_paid(ana.id, NEXT_WEEK)
        assert BonusHistory.query.filter_by(kind='referral').count() == 1
        assert BonusHistory.query.filter_by(kind='referral').one().week_id == WEEK

    def test_cancelled_week_releases_the_referral(self, db, bruno_has_four_paid_weeks):
        ana, _ = bruno_has_four_paid_weeks
        import_week()
        import_week(week=NEXT_WEEK)
        WeeklyProcessor.process_week(WEEK)
        WeeklyProcessor.process_week(NEXT_WEEK)
        assert payment_of(ana, NEXT_WEEK).bonus_referral == 0.0

        PaymentService.cancel_payment(payment_of(ana, WEEK).id)
        WeeklyProcessor.process_week(NEXT_WEEK)
        assert payment_of(ana, NEXT_WEEK).bonus_referral == 50.0

    def test_stale_pending_referral_is_refused_at_payment(self, db, bruno_has_four_paid_weeks):
        ana, _ = bruno_has_four_paid_weeks
        import_week()
        WeeklyProcessor.process_week(WEEK)
        stale_lines = payment_of(ana, WEEK).pending_bonuses
        PaymentService.mark_paid(ana.id, WEEK)

        import_week(week=NEXT_WEEK)
        WeeklyProcessor.process_week(NEXT_WEEK)
        # A line computed before the first payment reached the ledger
        stale = payment_of(ana, NEXT_WEEK)
        stale.pending_bonuses = stale_lines
        db.session.commit()

        with pytest.raises(ServiceError, match='Reprocess week 2025-W44'):
            PaymentService.mark_paid(ana.id, NEXT_WEEK)
        assert payment_of(ana, NEXT_WEEK).payment_status == 'pending'
        assert BonusHistory.query.filter_by(kind='referral').count() == 1

    def test_commission_rule_yearly_cap_across_pending_weeks(self, db, fleet):
        ana, _ = fleet
        cr = CommissionRule(type='base', level=1, value=15.0, description='Extra semanal', max_weeks_per_year=1)
        db.session.add(cr)
        db.session.commit()
        import_week()
        import_week(week=NEXT_WEEK)
        WeeklyProcessor.process_week(WEEK)
        WeeklyProcessor.process_week(NEXT_WEEK)

        assert payment_of(ana, WEEK).commission_amount == 15.0
        assert payment_of(ana, NEXT_WEEK).commission_amount == 0.0

        PaymentService.mark_paid(ana.id, WEEK)
        PaymentService.mark_paid(ana.id, NEXT_WEEK)
        assert BonusHistory.query.filter_by(kind='commission_rule', driver_id=ana.id).count() == 1


class TestReprocessing:
    def test_driver_without_data_loses_pending_payment(self, db, fleet):
        ana, bruno = fleet
        import_week()
        WeeklyProcessor.process_week(WEEK)
        DriverService.delete(bruno.id)

        results = WeeklyProcessor.process_week(WEEK)
        cancelled = [r for r in results if r.get('cancelled')]
        assert [r['driver_id'] for r in cancelled] == [bruno.id]
        assert payment_of(bruno, WEEK).payment_status == 'cancelled'

        week = Week.query.filter_by(week_id=WEEK).one()
        assert week.total_records == 1
        assert week.total_amount == pytest.approx(payment_of(ana, WEEK).repasse, abs=0.01)

        PaymentService.mark_paid(ana.id, WEEK)
        assert week.status == 'paid'
        assert PaymentService.get_payout_summary(WEEK)['pending_count'] == 0

    def test_week_totals_use_paid_amounts(self, db, fleet):
        ana, bruno = fleet
        import_week()
        WeeklyProcessor.process_week(WEEK)
        PaymentService.mark_paid(bruno.id, WEEK, {'bonus_amount': 10})

        WeeklyProcessor.process_week(WEEK)
        week = Week.query.filter_by(week_id=WEEK).one()
        ana_payment = payment_of(ana, WEEK)
        assert week.status == 'processed'
        assert week.total_records == 2
        assert week.total_amount == pytest.approx(642.4 + ana_payment.repasse, abs=0.01)
        assert week.total_bonus == pytest.approx(ana_payment.affiliate_commission, abs=0.01)
