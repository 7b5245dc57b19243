import logging
import re
import secrets
import time
from datetime import datetime, timedelta

from flask import current_app

from frota360.extensions import db
from frota360.models.driver import Driver
from frota360.models.referral_invite import ReferralInvite
from frota360.models.referral_rule import ReferralRule
from frota360.services.audit_service import AuditService
from frota360.services.errors import ServiceError, NotFoundError

INVITE_CODE_PATTERN = re.compile(r'^CONDUZ-[A-Z0-9]{4}-[A-Z0-9]+-[A-Z0-9]+$')
BASE36_ALPHABET = '0123456789abcdefghijklmnopqrstuvwxyz'


def to_base36(number):
    if number == 0:
        return '0'
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return ''.join(reversed(digits))


def generate_invite_code(referrer_id):
    """CONDUZ-<referrer>-<base36 timestamp>-<random>, upper case."""
    prefix = str(referrer_id).zfill(4)[:4]
    timestamp = to_base36(int(time.time() * 1000))
    random_part = ''.join(secrets.choice(BASE36_ALPHABET) for _ in range(6))
    return f"CONDUZ-{prefix}-{timestamp}-{random_part}".upper()


def is_valid_invite_code(code):
    return bool(code) and bool(INVITE_CODE_PATTERN.match(code))


def _expiry_days():
    try:
        return current_app.config.get('INVITE_EXPIRY_DAYS', 30)
    except RuntimeError:
        return 30


class ReferralService:
    @staticmethod
    def create_invite(referrer_id, email=None, phone=None):
        referrer = Driver.query_active().filter_by(id=referrer_id).first()
        if not referrer:
            raise NotFoundError("Referrer driver not found")
        if referrer.status != 'active':
            raise ServiceError("Only active drivers can invite")
        try:
            invite = ReferralInvite(
                referrer_id=referrer_id,
                invite_code=generate_invite_code(referrer_id),
                email=email,
                phone=phone,
                status='pending',
                expires_at=datetime.utcnow() + timedelta(days=_expiry_days()),
            )
            db.session.add(invite)
            db.session.commit()
            logging.info(f"Invite {invite.invite_code} created by driver {referrer_id}")
            return invite
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error creating invite: {e}", exc_info=True)
            raise ServiceError("Could not create invite. Please try again later.")

    @staticmethod
    def accept_invite(code, driver_id):
        code = (code or '').strip().upper()
        if not is_valid_invite_code(code):
            raise ServiceError("Invalid invite code")
        invite = ReferralInvite.query.filter_by(invite_code=code).first()
        if not invite:
            raise NotFoundError("Invite not found")
        if invite.status != 'pending':
            raise ServiceError(f"Invite is {invite.status}")
        if invite.expires_at < datetime.utcnow():
            invite.status = 'expired'
            db.session.commit()
            raise ServiceError("Invite has expired")

        driver = Driver.query_active().filter_by(id=driver_id).first()
        if not driver:
            raise NotFoundError("Driver not found")
        if driver.id == invite.referrer_id:
            raise ServiceError("A driver cannot refer themselves")
        if driver.referred_by_id:
            raise ServiceError("Driver was already referred")

        # The new link must not close a loop in the referral chain
        current = db.session.get(Driver, invite.referrer_id)
        seen = set()
        while current is not None and current.id not in seen:
            if current.id == driver.id:
                raise ServiceError("Referral would create a cycle")
            seen.add(current.id)
            current = current.referrer

        try:
            now = datetime.utcnow()
            driver.referred_by_id = invite.referrer_id
            driver.recruited_at = now
            invite.status = 'accepted'
            invite.accepted_at = now
            invite.accepted_by_driver_id = driver.id
            AuditService.record('invite_accepted', 'referral_invite', invite.id,
                                {'referrer_id': invite.referrer_id, 'driver_id': driver.id})
            db.session.commit()
            return invite
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error accepting invite: {e}", exc_info=True)
            raise ServiceError("Could not accept invite. Please try again later.")

    @staticmethod
    def list_invites(referrer_id, status=None):
        query = ReferralInvite.query.filter_by(referrer_id=referrer_id)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(ReferralInvite.created_at.desc()).all()

    @staticmethod
    def get_affiliate_network(driver_id):
        driver = Driver.query_active().filter_by(id=driver_id).first()
        if not driver:
            raise NotFoundError("Driver not found")
        recruits = Driver.query_active().filter_by(referred_by_id=driver_id).order_by(Driver.name).all()
        return {
            'driver_id': driver.id,
            'driver_name': driver.name,
            'affiliate_level': driver.affiliate_level,
            'referred_by_id': driver.referred_by_id,
            'total_recruits': len(recruits),
            'active_recruits': sum(1 for r in recruits if r.status == 'active'),
            'recruits': [
                {
                    'id': r.id,
                    'name': r.name,
                    'status': r.status,
                    'recruited_at': r.recruited_at.isoformat() if r.recruited_at else None,
                }
                for r in recruits
            ],
        }


class ReferralRuleService:
    @staticmethod
    def get_all():
        try:
            return ReferralRule.query.order_by(ReferralRule.id).all()
        except Exception as e:
            logging.error(f"Error fetching referral rules: {e}", exc_info=True)
            raise ServiceError("Could not fetch referral rules. Please try again later.")

    @staticmethod
    def create(data):
        try:
            rule = ReferralRule(**data)
            db.session.add(rule)
            db.session.commit()
            return rule
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error creating referral rule: {e}", exc_info=True)
            raise ServiceError("Could not create referral rule. Please try again later.")

    @staticmethod
    def update(rule_id, data):
        try:
            rule = db.session.get(ReferralRule, rule_id)
            if not rule:
                return None
            for key, value in data.items():
                setattr(rule, key, value)
            db.session.commit()
            return rule
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error updating referral rule: {e}", exc_info=True)
            raise ServiceError("Could not update referral rule. Please try again later.")

    @staticmethod
    def delete(rule_id):
        try:
            rule = db.session.get(ReferralRule, rule_id)
            if not rule:
                return False
            db.session.delete(rule)
            db.session.commit()
            return True
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error deleting referral rule: {e}", exc_info=True)
            raise ServiceError("Could not delete referral rule. Please try again later.")
