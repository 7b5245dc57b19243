from datetime import date
from types import SimpleNamespace

import pytest

from frota360.services.admin_fee import (
    DEFAULT_ADMIN_FEE_CONFIG,
    compute_admin_fee_for_driver,
    compute_base_value,
    exemption_status,
    is_fee_exempt,
    sanitize_admin_fee_config,
)


def driver(**kwargs):
    params = dict(id=1, type='affiliate', admin_fee_mode=None, admin_fee_value=None,
                  fee_exempt_start=None, fee_exempt_weeks=None, fee_exempt_reason=None)
    params.update(kwargs)
    return SimpleNamespace(**params)


CTX = {'ganhos_total': 1000.0, 'ganhos_menos_iva': 940.0, 'despesas': 200.0}


class TestConfigSanitizing:
    def test_missing_config_uses_defaults(self):
        assert sanitize_admin_fee_config(None) == DEFAULT_ADMIN_FEE_CONFIG

    def test_invalid_fields_fall_back_per_field(self):
        config = sanitize_admin_fee_config({
            'affiliate': {'mode': 'percent', 'value': 250, 'base': 'nonsense'},
            'renter': {'mode': 'weird', 'value': -3},
        })
        assert config['affiliate'] == {'mode': 'percent', 'value': 100.0, 'base': 'ganhosMenosIVA'}
        assert config['renter'] == DEFAULT_ADMIN_FEE_CONFIG['renter']

    def test_legacy_single_rule_format(self):
        config = sanitize_admin_fee_config({
            'mode': 'percent', 'percentValue': 7, 'fixedValue': 30, 'appliedToBase': 'repasse',
        })
        expected = {'mode': 'percent', 'value': 7.0, 'base': 'ganhosMenosIVAMenosDespesas'}
        assert config['affiliate'] == expected
        assert config['renter'] == expected


class TestBaseValue:
    @pytest.mark.parametrize('base,expected', [
        ('ganhosBrutos', 1000.0),
        ('ganhosMenosIVA', 940.0),
        ('ganhosBrutosMenosDespesas', 800.0),
        ('ganhosMenosIVAMenosDespesas', 740.0),
    ])
    def test_bases(self, base, expected):
        assert compute_base_value(base, CTX) == expected

    def test_negative_base_is_floored(self):
        ctx = {'ganhos_total': 50.0, 'ganhos_menos_iva': 47.0, 'despesas': 300.0}
        assert compute_base_value('ganhosMenosIVAMenosDespesas', ctx) == 0.0


class TestComputeFee:
    def test_affiliate_default_is_fixed(self):
        result = compute_admin_fee_for_driver(driver(), DEFAULT_ADMIN_FEE_CONFIG, CTX)
        assert result['fee'] == 25.0
        assert result['mode'] == 'fixed'
        assert result['overridden'] is False

    def test_renter_default_is_percent_of_net(self):
        result = compute_admin_fee_for_driver(driver(type='renter'), DEFAULT_ADMIN_FEE_CONFIG, CTX)
        assert result['fee'] == 37.6
        assert result['base'] == 'ganhosMenosIVA'

    def test_override_keeps_type_base(self):
        result = compute_admin_fee_for_driver(
            driver(admin_fee_mode='percent', admin_fee_value=150), DEFAULT_ADMIN_FEE_CONFIG, CTX
        )
        assert result['overridden'] is True
        assert result['value'] == 100.0
        assert result['base'] == 'ganhosMenosIVA'
        assert result['fee'] == 940.0

    def test_override_without_value_uses_financial_defaults(self):
        financial = {'adminFeePercent': 5.0, 'adminFeeFixedDefault': 30.0}
        result = compute_admin_fee_for_driver(
            driver(admin_fee_mode='fixed'), DEFAULT_ADMIN_FEE_CONFIG, CTX, financial
        )
        assert result['fee'] == 30.0

    def test_fee_on_zero_earnings(self):
        ctx = {'ganhos_total': 0.0, 'ganhos_menos_iva': 0.0, 'despesas': 0.0}
        result = compute_admin_fee_for_driver(driver(type='renter'), DEFAULT_ADMIN_FEE_CONFIG, ctx)
        assert result['fee'] == 0.0


class TestExemption:
    def test_exemption_window_is_half_open(self):
        d = driver(fee_exempt_start=date(2025, 10, 6), fee_exempt_weeks=2)
        assert not is_fee_exempt(d, date(2025, 10, 5))
        assert is_fee_exempt(d, date(2025, 10, 6))
        assert is_fee_exempt(d, date(2025, 10, 19))
        assert not is_fee_exempt(d, date(2025, 10, 20))

    def test_no_exemption_without_weeks(self):
        assert not is_fee_exempt(driver(fee_exempt_start=date(2025, 1, 1), fee_exempt_weeks=0), date(2025, 1, 2))

    def test_exemption_status_days_remaining(self):
        d = driver(fee_exempt_start=date(2025, 10, 6), fee_exempt_weeks=2, fee_exempt_reason='Novo motorista')
        status = exemption_status(d, today=date(2025, 10, 10))
        assert status['active'] is True
        assert status['end_date'] == '2025-10-20'
        assert status['days_remaining'] == 10

        expired = exemption_status(d, today=date(2025, 11, 1))
        assert expired['active'] is False
        assert expired['has_exemption'] is True
        assert expired['days_remaining'] == 0
