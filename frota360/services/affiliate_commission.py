"""
Multi-level affiliate commissions.

Every driver with a positive weekly base pays a share of it to each indicator
up the referral chain, as long as the indicator's own base for the same week
reaches the eligibility minimum.
"""
import logging
from frota360.extensions import db
from frota360.models.affiliate_bonus import AffiliateBonus
from frota360.services.errors import ServiceError

logger = logging.getLogger(__name__)


def calculate_commission_base(record, base_kind):
    """Base of one driver record: ganhos menos IVA, or the pre-bonus repasse."""
    if base_kind == 'ganhosMenosIVA':
        return round(record['ganhos_menos_iva'], 2)
    return round(record['pre_bonus_net'], 2)


def compute_affiliate_commissions(bases, referrer_map, config):
    """
    Args:
        bases: {driver_id: base for the week}
        referrer_map: {driver_id: referred_by_id or None}
        config: sanitized commission settings

    Returns:
        {indicator_id: {'total': float, 'details': [...]}}
    """
    minimum = config['min_weekly_revenue_for_eligibility']
    max_levels = config['max_levels']
    levels = config['levels']
    results = {}

    for driver_id, base in bases.items():
        if base <= 0:
            continue
        visited = {driver_id}
        current = driver_id
        for level in range(1, max_levels + 1):
            indicator = referrer_map.get(current)
            if indicator is None or indicator in visited:
                break
            visited.add(indicator)
            current = indicator
            pct = float(levels.get(str(level), 0.0))
            if pct <= 0:
                continue
            if bases.get(indicator, 0.0) < minimum:
                continue
            amount = round(base * pct, 2)
            if amount <= 0:
                continue
            entry = results.setdefault(indicator, {'total': 0.0, 'details': []})
            entry['details'].append({
                'level': level,
                'referred_driver_id': driver_id,
                'base': base,
                'percentage': pct,
                'bonus_amount': amount,
            })
            entry['total'] = round(entry['total'] + amount, 2)
    return results


class AffiliateCommissionService:
    @staticmethod
    def replace_for_week(week_id, results):
        """Replace the stored AffiliateBonus rows of a week. Does not commit."""
        AffiliateBonus.query.filter_by(week_id=week_id).delete()
        for indicator_id, entry in results.items():
            db.session.add(AffiliateBonus(
                indicator_id=indicator_id,
                week_id=week_id,
                total=entry['total'],
                details=entry['details'],
            ))

    @staticmethod
    def compute_for_week(week_id):
        from frota360.services.weekly_processor import WeeklyProcessor
        try:
            records = WeeklyProcessor.get_processed_weekly_records(week_id, force_refresh=True)
            results = {
                record['driver_id']: record['pending_bonuses']['affiliate']
                for record in records
                if record['affiliate_commission'] > 0
            }
            AffiliateCommissionService.replace_for_week(week_id, results)
            db.session.commit()
            logger.info(f"Affiliate commissions for {week_id}: {len(results)} indicators")
            return {'processed': len(records), 'indicators': len(results)}
        except ServiceError:
            db.session.rollback()
            raise
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error computing affiliate commissions for {week_id}: {e}", exc_info=True)
            raise ServiceError("Could not compute affiliate commissions. Please try again later.")

    @staticmethod
    def get_for_driver(driver_id, limit=12):
        bonuses = (
            AffiliateBonus.query.filter_by(indicator_id=driver_id)
            .order_by(AffiliateBonus.week_id.desc())
            .limit(limit)
            .all()
        )
        by_level = {}
        for bonus in bonuses:
            for detail in bonus.details or []:
                level = str(detail['level'])
                by_level[level] = round(by_level.get(level, 0.0) + detail['bonus_amount'], 2)
        return {
            'weeks': [
                {'week_id': b.week_id, 'total': b.total, 'details': b.details} for b in bonuses
            ],
            'total': round(sum(b.total for b in bonuses), 2),
            'by_level': by_level,
        }
