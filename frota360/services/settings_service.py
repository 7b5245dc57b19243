import copy
import logging
from frota360.extensions import db
from frota360.models.system_settings import SystemSettings
from frota360.services.errors import ServiceError
from frota360.services.admin_fee import sanitize_admin_fee_config

ADMIN_FEE_KEY = 'admin_fee'
FINANCIAL_KEY = 'financial'
COMMISSION_KEY = 'commission'
REFERRAL_KEY = 'referral'
GOALS_KEY = 'goals'

FINANCING_POLICIES = ('startDateToWeekEnd', 'startDateToWeekStart')
DEFAULT_FINANCIAL_CONFIG = {
    'adminFeePercent': 7.0,
    'adminFeeFixedDefault': 25.0,
    'financing': {
        'dynamicCalculation': True,
        'eligibilityPolicy': 'startDateToWeekEnd',
        'paymentDecrementDynamic': True,
    },
}
DEFAULT_COMMISSION_CONFIG = {
    'min_weekly_revenue_for_eligibility': 550.0,
    'base': 'repasse',
    'max_levels': 3,
    'levels': {'1': 0.02, '2': 0.01, '3': 0.005},
}
MAX_COMMISSION_LEVELS = 10
DEFAULT_REFERRAL_CONFIG = {
    'bonus_amount': 50.0,
    'minimum_weeks': 4,
}


def _number(value, fallback, minimum=0.0):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    return number if number >= minimum else fallback


def sanitize_financial_config(raw):
    config = copy.deepcopy(DEFAULT_FINANCIAL_CONFIG)
    if not isinstance(raw, dict):
        return config
    config['adminFeePercent'] = min(_number(raw.get('adminFeePercent'), config['adminFeePercent']), 100.0)
    config['adminFeeFixedDefault'] = _number(raw.get('adminFeeFixedDefault'), config['adminFeeFixedDefault'])
    financing = raw.get('financing') if isinstance(raw.get('financing'), dict) else {}
    for flag in ('dynamicCalculation', 'paymentDecrementDynamic'):
        if isinstance(financing.get(flag), bool):
            config['financing'][flag] = financing[flag]
    if financing.get('eligibilityPolicy') in FINANCING_POLICIES:
        config['financing']['eligibilityPolicy'] = financing['eligibilityPolicy']
    return config


def sanitize_commission_config(raw):
    config = copy.deepcopy(DEFAULT_COMMISSION_CONFIG)
    if not isinstance(raw, dict):
        return config
    config['min_weekly_revenue_for_eligibility'] = _number(
        raw.get('min_weekly_revenue_for_eligibility'), config['min_weekly_revenue_for_eligibility']
    )
    if raw.get('base') in ('repasse', 'ganhosMenosIVA'):
        config['base'] = raw['base']
    max_levels = _number(raw.get('max_levels'), config['max_levels'], minimum=1)
    config['max_levels'] = int(min(max_levels, MAX_COMMISSION_LEVELS))
    if isinstance(raw.get('levels'), dict):
        levels = {}
        for level, pct in raw['levels'].items():
            pct = _number(pct, None)
            if pct is not None:
                levels[str(level)] = pct
        config['levels'] = levels
    return config


def sanitize_referral_config(raw):
    config = copy.deepcopy(DEFAULT_REFERRAL_CONFIG)
    if not isinstance(raw, dict):
        return config
    config['bonus_amount'] = _number(raw.get('bonus_amount'), config['bonus_amount'])
    config['minimum_weeks'] = int(_number(raw.get('minimum_weeks'), config['minimum_weeks']))
    return config


def sanitize_goals_config(raw):
    """Quarter targets; invalid or negative targets are dropped."""
    if not isinstance(raw, dict):
        return {}
    targets = {}
    for quarter in ('Q1', 'Q2', 'Q3', 'Q4'):
        target = _number(raw.get(quarter), None)
        if target is not None:
            targets[quarter] = target
    return targets


SANITIZERS = {
    ADMIN_FEE_KEY: sanitize_admin_fee_config,
    FINANCIAL_KEY: sanitize_financial_config,
    COMMISSION_KEY: sanitize_commission_config,
    REFERRAL_KEY: sanitize_referral_config,
    GOALS_KEY: sanitize_goals_config,
}


class SettingsService:
    @staticmethod
    def get_raw(key):
        setting = SystemSettings.query.filter_by(setting_key=key).first()
        return setting.setting_value if setting else None

    @staticmethod
    def get(key):
        """Stored value for a known key, sanitized against its defaults."""
        if key not in SANITIZERS:
            raise ServiceError(f"Unknown setting: {key}")
        try:
            return SANITIZERS[key](SettingsService.get_raw(key))
        except Exception as e:
            logging.error(f"Error reading setting {key}: {e}", exc_info=True)
            raise ServiceError("Could not read settings. Please try again later.")

    @staticmethod
    def update(key, value, user_id=None):
        if key not in SANITIZERS:
            raise ServiceError(f"Unknown setting: {key}")
        try:
            sanitized = SANITIZERS[key](value)
            setting = SystemSettings.query.filter_by(setting_key=key).first()
            if not setting:
                setting = SystemSettings(setting_key=key)
                db.session.add(setting)
            setting.setting_value = sanitized
            setting.updated_by = user_id
            db.session.commit()
            logging.info(f"Setting {key} updated by user {user_id}")
            return sanitized
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error updating setting {key}: {e}", exc_info=True)
            raise ServiceError("Could not update settings. Please try again later.")

    @staticmethod
    def get_admin_fee_config():
        return SettingsService.get(ADMIN_FEE_KEY)

    @staticmethod
    def get_financial_config():
        return SettingsService.get(FINANCIAL_KEY)

    @staticmethod
    def get_commission_config():
        return SettingsService.get(COMMISSION_KEY)

    @staticmethod
    def get_referral_config():
        return SettingsService.get(REFERRAL_KEY)

    @staticmethod
    def get_goals_config():
        return SettingsService.get(GOALS_KEY)
