"""
Administrative fee rules.

The fee is configured per driver type as a mode (percent or fixed), a value
and the base the percentage applies to. A driver may override mode and value
but always keeps the base of its type rule.
"""
import copy
import logging
from datetime import timedelta

from frota360.utils.timezone_utils import display_today, parse_date

logger = logging.getLogger(__name__)

ADMIN_FEE_MODES = ('percent', 'fixed')
ADMIN_FEE_BASES = (
    'ganhosBrutos',
    'ganhosMenosIVA',
    'ganhosBrutosMenosDespesas',
    'ganhosMenosIVAMenosDespesas',
)
DEFAULT_ADMIN_FEE_CONFIG = {
    'affiliate': {'mode': 'fixed', 'value': 25.0, 'base': 'ganhosMenosIVA'},
    'renter': {'mode': 'percent', 'value': 4.0, 'base': 'ganhosMenosIVA'},
}
# appliedToBase values of the single-rule config format
LEGACY_BASE_MAP = {
    'repasse': 'ganhosMenosIVAMenosDespesas',
    'ganhosBrutos': 'ganhosBrutos',
    'ganhosMenosIVA': 'ganhosMenosIVA',
}


def _to_float(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def sanitize_rule(raw, fallback):
    raw = raw if isinstance(raw, dict) else {}
    mode = raw.get('mode') if raw.get('mode') in ADMIN_FEE_MODES else fallback['mode']
    value = _to_float(raw.get('value'))
    if value is None or value < 0:
        value = fallback['value']
    if mode == 'percent':
        value = min(value, 100.0)
    base = raw.get('base') if raw.get('base') in ADMIN_FEE_BASES else fallback['base']
    return {'mode': mode, 'value': value, 'base': base}


def sanitize_admin_fee_config(raw):
    """Normalize a stored config, falling back field by field to the defaults."""
    defaults = copy.deepcopy(DEFAULT_ADMIN_FEE_CONFIG)
    if not isinstance(raw, dict):
        return defaults
    if 'affiliate' in raw or 'renter' in raw:
        return {
            driver_type: sanitize_rule(raw.get(driver_type), defaults[driver_type])
            for driver_type in defaults
        }
    if 'mode' in raw:
        mode = raw.get('mode')
        value = raw.get('percentValue') if mode == 'percent' else raw.get('fixedValue')
        base = LEGACY_BASE_MAP.get(raw.get('appliedToBase'))
        legacy = {'mode': mode, 'value': value, 'base': base}
        return {
            driver_type: sanitize_rule(legacy, defaults[driver_type])
            for driver_type in defaults
        }
    return defaults


def compute_base_value(base, ctx):
    """
    Value of a fee base for one driver week.

    ctx keys: ganhos_total, ganhos_menos_iva, despesas (fuel, tolls, rent and
    financing). Every base is floored at 0.
    """
    gross = ctx.get('ganhos_total', 0.0)
    net_of_vat = ctx.get('ganhos_menos_iva', 0.0)
    expenses = ctx.get('despesas', 0.0)
    values = {
        'ganhosBrutos': gross,
        'ganhosMenosIVA': net_of_vat,
        'ganhosBrutosMenosDespesas': gross - expenses,
        'ganhosMenosIVAMenosDespesas': net_of_vat - expenses,
    }
    return max(0.0, values.get(base, net_of_vat))


def compute_admin_fee_for_driver(driver, config, ctx, financial_config=None):
    """
    Returns:
        dict with fee, base, base_value, mode, value and overridden
    """
    rule = config.get(driver.type) or config['affiliate']
    mode, value, overridden = rule['mode'], rule['value'], False

    if driver.admin_fee_mode in ADMIN_FEE_MODES:
        overridden = True
        mode = driver.admin_fee_mode
        value = driver.admin_fee_value
        if value is None and financial_config:
            value = (financial_config['adminFeePercent'] if mode == 'percent'
                     else financial_config['adminFeeFixedDefault'])
        value = max(0.0, float(value or 0.0))
        if mode == 'percent':
            value = min(value, 100.0)

    base_value = compute_base_value(rule['base'], ctx)
    if mode == 'percent':
        fee = round(base_value * value / 100.0, 2)
    else:
        fee = round(value, 2)
    return {
        'fee': max(0.0, fee),
        'base': rule['base'],
        'base_value': round(base_value, 2),
        'mode': mode,
        'value': value,
        'overridden': overridden,
    }


def exemption_end(driver):
    start = parse_date(driver.fee_exempt_start)
    if not start or not driver.fee_exempt_weeks or driver.fee_exempt_weeks <= 0:
        return None
    return start + timedelta(days=7 * driver.fee_exempt_weeks)


def is_fee_exempt(driver, day):
    """Exempt while start <= day < start + weeks."""
    end = exemption_end(driver)
    if end is None:
        return False
    return parse_date(driver.fee_exempt_start) <= parse_date(day) < end


def exemption_status(driver, today=None):
    today = today or display_today()
    end = exemption_end(driver)
    active = end is not None and is_fee_exempt(driver, today)
    return {
        'driver_id': driver.id,
        'has_exemption': end is not None,
        'active': active,
        'start_date': driver.fee_exempt_start.isoformat() if driver.fee_exempt_start else None,
        'weeks': driver.fee_exempt_weeks,
        'end_date': end.isoformat() if end else None,
        'days_remaining': (end - today).days if active else 0,
        'reason': driver.fee_exempt_reason,
    }
