import logging
from sqlalchemy import func

from frota360.extensions import db
from frota360.models.driver import Driver
from frota360.models.driver_payment import DriverPayment
from frota360.models.week import PLATFORMS
from frota360.models.weekly_normalized_data import WeeklyNormalizedData
from frota360.services.errors import ServiceError
from frota360.utils.timezone_utils import get_previous_week_id, get_week_id, is_valid_week_id


def _week_metrics(week_id):
    platform_rows = dict(
        db.session.query(WeeklyNormalizedData.platform, func.sum(WeeklyNormalizedData.total_value))
        .filter_by(week_id=week_id)
        .group_by(WeeklyNormalizedData.platform)
        .all()
    )
    platforms = {p: round(platform_rows.get(p) or 0.0, 2) for p in PLATFORMS}

    payments = DriverPayment.query.filter(
        DriverPayment.week_id == week_id, DriverPayment.payment_status != 'cancelled'
    ).all()
    return {
        'platforms': platforms,
        'ganhos_total': round(sum(p.ganhos_total for p in payments), 2),
        'admin_fees': round(sum(p.despesas_adm for p in payments), 2),
        'net_paid': round(sum(p.total_amount for p in payments if p.payment_status == 'paid'), 2),
        'net_pending': round(sum(p.repasse for p in payments if p.payment_status == 'pending'), 2),
        'drivers_with_data': len(payments),
    }


def _delta(current, previous):
    change = round(current - previous, 2)
    pct = round(change / previous * 100, 1) if previous else None
    return {'change': change, 'percent': pct}


class DashboardService:
    @staticmethod
    def get_dashboard_stats(week_id=None):
        week_id = week_id or get_week_id()
        if not is_valid_week_id(week_id):
            raise ServiceError(f"Invalid week id: {week_id}")
        try:
            current = _week_metrics(week_id)
            previous_id = get_previous_week_id(week_id)
            previous = _week_metrics(previous_id)
            return {
                'week_id': week_id,
                'previous_week_id': previous_id,
                'active_drivers': Driver.query_active().filter_by(status='active').count(),
                'pending_drivers': Driver.query_active().filter_by(status='pending').count(),
                **current,
                'deltas': {
                    key: _delta(current[key], previous[key])
                    for key in ('ganhos_total', 'admin_fees', 'net_paid', 'net_pending')
                },
            }
        except Exception as e:
            logging.error(f"Error building dashboard stats: {e}", exc_info=True)
            raise ServiceError("Could not load dashboard stats. Please try again later.")
