import pytest

from frota360.models.system_settings import SystemSettings
from frota360.services.errors import ServiceError
from frota360.services.settings_service import (
    ADMIN_FEE_KEY,
    COMMISSION_KEY,
    FINANCIAL_KEY,
    REFERRAL_KEY,
    SettingsService,
    sanitize_commission_config,
    sanitize_financial_config,
)


def test_defaults_when_nothing_stored(db):
    assert SettingsService.get_financial_config()['adminFeePercent'] == 7.0
    assert SettingsService.get_commission_config()['levels'] == {'1': 0.02, '2': 0.01, '3': 0.005}
    assert SettingsService.get_referral_config() == {'bonus_amount': 50.0, 'minimum_weeks': 4}
    assert SettingsService.get_goals_config() == {}
    assert SettingsService.get_admin_fee_config()['renter']['mode'] == 'percent'


def test_financial_config_keeps_valid_fields_only():
    config = sanitize_financial_config({
        'adminFeePercent': 150,
        'adminFeeFixedDefault': -3,
        'financing': {'dynamicCalculation': 'yes', 'eligibilityPolicy': 'startDateToWeekStart',
                      'paymentDecrementDynamic': False},
    })
    assert config['adminFeePercent'] == 100.0
    assert config['adminFeeFixedDefault'] == 25.0
    assert config['financing'] == {
        'dynamicCalculation': True,
        'eligibilityPolicy': 'startDateToWeekStart',
        'paymentDecrementDynamic': False,
    }


def test_commission_config_levels():
    config = sanitize_commission_config({'base': 'ganhosMenosIVA', 'max_levels': 0,
                                         'levels': {1: '0.03', 2: 'x'}})
    assert config['base'] == 'ganhosMenosIVA'
    assert config['max_levels'] == 3
    assert config['levels'] == {'1': 0.03}


def test_commission_config_levels_are_capped():
    assert sanitize_commission_config({'max_levels': 'inf'})['max_levels'] == 10
    assert sanitize_commission_config({'max_levels': 50})['max_levels'] == 10
    assert sanitize_commission_config({'max_levels': 'nan'})['max_levels'] == 3
    assert sanitize_commission_config({'max_levels': 4.7})['max_levels'] == 4


def test_update_stores_sanitized_value(db):
    stored = SettingsService.update(REFERRAL_KEY, {'bonus_amount': '75', 'minimum_weeks': 6}, user_id=None)
    assert stored == {'bonus_amount': 75.0, 'minimum_weeks': 6}
    row = SystemSettings.query.filter_by(setting_key=REFERRAL_KEY).one()
    assert row.setting_value == stored

    SettingsService.update(REFERRAL_KEY, {'bonus_amount': 60})
    assert SystemSettings.query.filter_by(setting_key=REFERRAL_KEY).count() == 1
    assert SettingsService.get_referral_config()['bonus_amount'] == 60.0


def test_admin_fee_update_falls_back_per_field(db):
    stored = SettingsService.update(ADMIN_FEE_KEY, {'affiliate': {'mode': 'percent', 'value': 5, 'base': 'nope'}})
    assert stored['affiliate'] == {'mode': 'percent', 'value': 5.0, 'base': 'ganhosMenosIVA'}
    assert stored['renter']['value'] == 4.0


def test_unknown_key(db):
    with pytest.raises(ServiceError):
        SettingsService.get('colors')
    with pytest.raises(ServiceError):
        SettingsService.update('colors', {})


def test_garbage_stored_value_reads_as_defaults(db):
    db.session.add(SystemSettings(setting_key=FINANCIAL_KEY, setting_value='not-a-dict'))
    db.session.commit()
    assert SettingsService.get(FINANCIAL_KEY)['financing']['dynamicCalculation'] is True
    assert SettingsService.get(COMMISSION_KEY)['base'] == 'repasse'
