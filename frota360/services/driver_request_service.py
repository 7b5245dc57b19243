"""
Driver onboarding requests.

A request is created from the public site, optionally carrying the invite
code of the referral link. Approving it creates an active driver and links
the referral chain through the invite.
"""
import logging
from datetime import datetime

from frota360.extensions import db
from frota360.models.driver import Driver
from frota360.models.driver_request import DriverRequest
from frota360.models.referral_invite import ReferralInvite
from frota360.services.audit_service import AuditService
from frota360.services.errors import ServiceError, NotFoundError
from frota360.services.referral_service import ReferralService, is_valid_invite_code
from frota360.utils.timezone_utils import coerce_date_fields

logger = logging.getLogger(__name__)


class DriverRequestService:
    @staticmethod
    def get_all(status=None):
        try:
            query = DriverRequest.query
            if status:
                query = query.filter_by(status=status)
            return query.order_by(DriverRequest.created_at.desc(), DriverRequest.id.desc()).all()
        except Exception as e:
            logging.error(f"Error fetching driver requests: {e}", exc_info=True)
            raise ServiceError("Could not fetch driver requests. Please try again later.")

    @staticmethod
    def create(data):
        data = coerce_date_fields(dict(data), 'birth_date')
        code = (data.pop('referral_invite_code', None) or '').strip().upper() or None
        referrer_id = None
        if code:
            if not is_valid_invite_code(code):
                raise ServiceError("Invalid invite code")
            invite = ReferralInvite.query.filter_by(invite_code=code).first()
            if not invite or invite.status != 'pending' or invite.expires_at < datetime.utcnow():
                raise ServiceError("Invite code is not valid anymore")
            referrer_id = invite.referrer_id
        try:
            driver_request = DriverRequest(
                status='pending', referral_invite_code=code, referrer_id=referrer_id, **data
            )
            db.session.add(driver_request)
            db.session.commit()
            logger.info(f"Driver request {driver_request.id} created ({driver_request.type})")
            return driver_request
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error creating driver request: {e}", exc_info=True)
            raise ServiceError("Could not create driver request. Please try again later.")

    @staticmethod
    def _get_pending(request_id):
        driver_request = db.session.get(DriverRequest, request_id)
        if not driver_request:
            raise NotFoundError("Driver request not found")
        if driver_request.status != 'pending':
            raise ServiceError(f"Request already {driver_request.status}")
        return driver_request

    @staticmethod
    def approve(request_id, user_id=None, admin_notes=None):
        driver_request = DriverRequestService._get_pending(request_id)
        try:
            vehicle = driver_request.vehicle or {}
            driver = Driver(
                name=driver_request.full_name,
                email=driver_request.email,
                phone=driver_request.phone,
                type=driver_request.type,
                status='active',
                vehicle_plate=vehicle.get('plate'),
            )
            db.session.add(driver)
            db.session.flush()
            driver_request.status = 'approved'
            driver_request.driver_id = driver.id
            driver_request.admin_notes = admin_notes
            driver_request.reviewed_by = user_id
            driver_request.reviewed_at = datetime.utcnow()
            AuditService.record('driver_request_approved', 'driver_request', driver_request.id,
                                {'driver_id': driver.id}, user_id)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error approving driver request: {e}", exc_info=True)
            raise ServiceError("Could not approve driver request. Please try again later.")

        if driver_request.referral_invite_code:
            try:
                ReferralService.accept_invite(driver_request.referral_invite_code, driver.id)
            except ServiceError as se:
                # The invite was used or expired after the request was sent
                logger.warning(f"Invite {driver_request.referral_invite_code} not accepted "
                               f"for driver {driver.id}: {se.message}")
                if driver_request.referrer_id and not driver.referred_by_id:
                    driver.referred_by_id = driver_request.referrer_id
                    driver.recruited_at = datetime.utcnow()
                    db.session.commit()
        return driver_request

    @staticmethod
    def reject(request_id, user_id=None, admin_notes=None):
        driver_request = DriverRequestService._get_pending(request_id)
        try:
            driver_request.status = 'rejected'
            driver_request.admin_notes = admin_notes
            driver_request.reviewed_by = user_id
            driver_request.reviewed_at = datetime.utcnow()
            AuditService.record('driver_request_rejected', 'driver_request', driver_request.id, None, user_id)
            db.session.commit()
            return driver_request
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error rejecting driver request: {e}", exc_info=True)
            raise ServiceError("Could not reject driver request. Please try again later.")
