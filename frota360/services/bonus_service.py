"""
Weekly bonuses: goal rewards, referral bonuses and commission-rule extras.

Bonuses are computed as pending lines while a week is processed and only
reach the BonusHistory ledger when the payment is marked as paid.
"""
import logging
from sqlalchemy import func

from frota360.extensions import db
from frota360.models.bonus_history import BonusHistory
from frota360.models.commission_rule import CommissionRule
from frota360.models.driver import Driver
from frota360.models.driver_payment import DriverPayment
from frota360.models.goal_reward import GoalReward
from frota360.models.referral_rule import ReferralRule
from frota360.services.errors import ServiceError
from frota360.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

DEFAULT_REFERRAL_RULE_KEY = 'default'


def referral_reference(rule_key, referred_driver_id):
    return f"{rule_key}:{referred_driver_id}"


def calculate_goal_bonuses(rewards, week_start, ganhos_total, trips):
    bonuses = []
    for reward in rewards:
        if reward.start_date and week_start < reward.start_date:
            continue
        if reward.criterion == 'trips':
            base_value = trips
        else:
            base_value = ganhos_total
        if base_value < reward.target:
            continue
        if reward.reward_type == 'percent':
            amount = ganhos_total * reward.reward_value / 100.0
        else:
            amount = reward.reward_value
        amount = round(amount, 2)
        if amount <= 0:
            continue
        bonuses.append({
            'reward_id': reward.id,
            'description': reward.description,
            'criterion': reward.criterion,
            'reward_type': reward.reward_type,
            'target': reward.target,
            'base_value': base_value,
            'amount': amount,
        })
    return bonuses


def calculate_referral_bonuses(recruits, rules, paid_weeks, paid_references):
    """
    One line per (rule, active recruit). Ineligible lines are kept with
    amount 0 so the panel can show progress.
    """
    bonuses = []
    for recruit in recruits:
        if recruit.status != 'active' or recruit.is_deleted:
            continue
        completed = paid_weeks.get(recruit.id, 0)
        for rule in rules:
            reference = referral_reference(rule['key'], recruit.id)
            if reference in paid_references:
                continue
            eligible = completed >= rule['minimum_weeks']
            bonuses.append({
                'rule_key': rule['key'],
                'reference': reference,
                'description': rule['description'],
                'referred_driver_id': recruit.id,
                'referred_driver_name': recruit.name,
                'weeks_completed': completed,
                'minimum_weeks': rule['minimum_weeks'],
                'amount': round(rule['bonus_amount'], 2) if eligible else 0.0,
                'eligible': eligible,
            })
    return bonuses


def validate_commission_eligibility(rule, earnings, recruitment_count):
    """
    Returns:
        (eligible, amount, reason)
    """
    if rule.type == 'base':
        if rule.min_earnings is not None and earnings < rule.min_earnings:
            return False, 0.0, f"Earnings {earnings:.2f} below minimum {rule.min_earnings:.2f}"
        if rule.percentage and rule.percentage > 0:
            amount = earnings * rule.percentage / 100.0
        else:
            amount = rule.value or 0.0
        return amount > 0, round(amount, 2), None
    if rule.type == 'recruitment':
        minimum = rule.min_recruitments or 0
        if recruitment_count < minimum:
            return False, 0.0, f"{recruitment_count} recruitments, {minimum} required"
        amount = rule.value or 0.0
        return amount > 0, round(amount, 2), None
    return False, 0.0, f"Unknown rule type: {rule.type}"


def calculate_commission_rule_bonuses(rules, driver, week_start, ganhos_total, recruitment_count, payments_this_year):
    bonuses = []
    for rule in rules:
        if rule.level != driver.affiliate_level or not rule.is_valid_on(week_start):
            continue
        if payments_this_year.get((driver.id, rule.id), 0) >= rule.max_weeks_per_year:
            continue
        eligible, amount, _ = validate_commission_eligibility(rule, ganhos_total, recruitment_count)
        if not eligible:
            continue
        bonuses.append({
            'rule_id': rule.id,
            'type': rule.type,
            'level': rule.level,
            'description': rule.description,
            'amount': amount,
        })
    return bonuses


class BonusService:
    @staticmethod
    def load_context(week_id, drivers):
        """Everything the per-driver bonus calculation needs, fetched once per week."""
        try:
            rewards = GoalReward.query.filter_by(active=True).all()

            rules = [
                {
                    'key': str(rule.id),
                    'description': rule.description,
                    'bonus_amount': rule.bonus_amount,
                    'minimum_weeks': rule.minimum_weeks,
                }
                for rule in ReferralRule.query.filter_by(active=True).all()
            ]
            if not rules:
                settings = SettingsService.get_referral_config()
                rules = [{
                    'key': DEFAULT_REFERRAL_RULE_KEY,
                    'description': 'Bónus de indicação',
                    'bonus_amount': settings['bonus_amount'],
                    'minimum_weeks': settings['minimum_weeks'],
                }]

            paid_weeks = dict(
                db.session.query(DriverPayment.driver_id, func.count(DriverPayment.id))
                .filter(DriverPayment.payment_status == 'paid')
                .group_by(DriverPayment.driver_id)
                .all()
            )
            paid_references = {
                reference for (reference,) in
                db.session.query(BonusHistory.reference).filter_by(kind='referral').all()
            }

            year_prefix = f"{week_id[:4]}-W"
            payments_this_year = {}
            history = BonusHistory.query.filter(
                BonusHistory.kind == 'commission_rule',
                BonusHistory.week_id.like(f"{year_prefix}%"),
                BonusHistory.week_id != week_id,
            ).all()
            for entry in history:
                key = (entry.driver_id, int(entry.reference))
                payments_this_year[key] = payments_this_year.get(key, 0) + 1

            # Lines waiting on pending payments of other weeks are already claimed
            reserved = DriverPayment.query.filter(
                DriverPayment.payment_status == 'pending',
                DriverPayment.week_id != week_id,
            ).all()
            for payment in reserved:
                pending = payment.pending_bonuses or {}
                for referral in pending.get('referrals', []):
                    if referral.get('eligible'):
                        paid_references.add(referral['reference'])
                if not payment.week_id.startswith(year_prefix):
                    continue
                for rule in pending.get('commission_rules', []):
                    key = (payment.driver_id, int(rule['rule_id']))
                    payments_this_year[key] = payments_this_year.get(key, 0) + 1

            recruits = {}
            for driver in Driver.query_active().filter(Driver.referred_by_id.isnot(None)).all():
                recruits.setdefault(driver.referred_by_id, []).append(driver)

            return {
                'rewards': rewards,
                'referral_rules': rules,
                'paid_weeks': paid_weeks,
                'paid_references': paid_references,
                'commission_rules': CommissionRule.query.filter_by(active=True).all(),
                'payments_this_year': payments_this_year,
                'recruits': recruits,
            }
        except ServiceError:
            raise
        except Exception as e:
            logging.error(f"Error loading bonus context for {week_id}: {e}", exc_info=True)
            raise ServiceError("Could not load bonus rules. Please try again later.")

    @staticmethod
    def calculate_all_bonuses(driver, week_start, ganhos_total, trips, ctx):
        recruits = ctx['recruits'].get(driver.id, [])
        active_recruits = [r for r in recruits if r.status == 'active']

        goals = calculate_goal_bonuses(ctx['rewards'], week_start, ganhos_total, trips)
        referrals = calculate_referral_bonuses(
            recruits, ctx['referral_rules'], ctx['paid_weeks'], ctx['paid_references']
        )
        commission_rules = calculate_commission_rule_bonuses(
            ctx['commission_rules'], driver, week_start, ganhos_total,
            len(active_recruits), ctx['payments_this_year']
        )

        bonus_metas = round(sum(b['amount'] for b in goals), 2)
        bonus_referral = round(sum(b['amount'] for b in referrals if b['eligible']), 2)
        commission_amount = round(sum(b['amount'] for b in commission_rules), 2)
        return {
            'goals': goals,
            'referrals': referrals,
            'commission_rules': commission_rules,
            'bonus_metas': bonus_metas,
            'bonus_referral': bonus_referral,
            'commission_amount': commission_amount,
            'total_bonus_amount': round(bonus_metas + bonus_referral + commission_amount, 2),
        }

    @staticmethod
    def check_ledger_limits(payment):
        """
        Raise ServiceError when a pending line of the payment would pay a
        referral twice or exceed the yearly cap of a commission rule.
        """
        pending = payment.pending_bonuses or {}
        for referral in pending.get('referrals', []):
            if not referral.get('eligible'):
                continue
            already_paid = BonusHistory.query.filter_by(kind='referral', reference=referral['reference']).first()
            if already_paid:
                raise ServiceError(
                    f"Referral bonus {referral['reference']} was already paid in {already_paid.week_id}. "
                    f"Reprocess week {payment.week_id} before paying."
                )
        year_prefix = f"{payment.week_id[:4]}-W"
        for line in pending.get('commission_rules', []):
            rule = db.session.get(CommissionRule, line['rule_id'])
            if rule is None:
                continue
            paid = BonusHistory.query.filter(
                BonusHistory.kind == 'commission_rule',
                BonusHistory.driver_id == payment.driver_id,
                BonusHistory.reference == str(rule.id),
                BonusHistory.week_id.like(f"{year_prefix}%"),
                BonusHistory.week_id != payment.week_id,
            ).count()
            if paid >= rule.max_weeks_per_year:
                raise ServiceError(
                    f"Commission rule {rule.id} already paid {paid} weeks this year. "
                    f"Reprocess week {payment.week_id} before paying."
                )

    @staticmethod
    def record_paid_bonuses(payment):
        """Write the ledger entries for a payment being marked paid. Does not commit."""
        BonusService.check_ledger_limits(payment)
        pending = payment.pending_bonuses or {}
        entries = []
        for goal in pending.get('goals', []):
            entries.append(BonusHistory(
                kind='goal', reference=str(goal['reward_id']), amount=goal['amount'], details=goal
            ))
        for referral in pending.get('referrals', []):
            if referral.get('eligible') and referral.get('amount', 0) > 0:
                entries.append(BonusHistory(
                    kind='referral', reference=referral['reference'], amount=referral['amount'], details=referral
                ))
        for rule in pending.get('commission_rules', []):
            entries.append(BonusHistory(
                kind='commission_rule', reference=str(rule['rule_id']), amount=rule['amount'], details=rule
            ))
        affiliate = pending.get('affiliate') or {}
        if affiliate.get('total', 0) > 0:
            entries.append(BonusHistory(
                kind='affiliate', reference=payment.week_id, amount=affiliate['total'], details=affiliate
            ))
        for entry in entries:
            entry.driver_id = payment.driver_id
            entry.week_id = payment.week_id
            entry.payment_id = payment.id
            db.session.add(entry)
        return entries
