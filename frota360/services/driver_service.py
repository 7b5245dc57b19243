import logging
from frota360.extensions import db
from frota360.models.driver import Driver, DRIVER_TYPES, DRIVER_STATUSES
from frota360.services.admin_fee import exemption_status
from frota360.services.audit_service import AuditService
from frota360.services.errors import ServiceError, NotFoundError
from frota360.utils.timezone_utils import coerce_date_fields, parse_date

class DriverService:
    @staticmethod
    def get_all(status=None, driver_type=None):
        try:
            query = Driver.query_active()
            if status:
                query = query.filter_by(status=status)
            if driver_type:
                query = query.filter_by(type=driver_type)
            return query.order_by(Driver.name).all()
        except Exception as e:
            logging.error(f"Error fetching drivers: {e}", exc_info=True)
            raise ServiceError("Could not fetch drivers. Please try again later.")

    @staticmethod
    def get_by_id(driver_id):
        try:
            return Driver.query_active().filter_by(id=driver_id).first()
        except Exception as e:
            logging.error(f"Error fetching driver: {e}", exc_info=True)
            raise ServiceError("Could not fetch driver. Please try again later.")

    @staticmethod
    def _validate(data):
        if 'type' in data and data['type'] not in DRIVER_TYPES:
            raise ServiceError(f"Invalid driver type: {data['type']}")
        if 'status' in data and data['status'] not in DRIVER_STATUSES:
            raise ServiceError(f"Invalid driver status: {data['status']}")
        if data.get('referred_by_id') is not None:
            if not Driver.query_active().filter_by(id=data['referred_by_id']).first():
                raise ServiceError("Referrer driver does not exist")

    @staticmethod
    def create(data):
        data = coerce_date_fields(dict(data), 'fee_exempt_start')
        DriverService._validate(data)
        try:
            driver = Driver(**data)
            db.session.add(driver)
            db.session.commit()
            return driver
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error creating driver: {e}", exc_info=True)
            raise ServiceError("Could not create driver. Please try again later.")

    @staticmethod
    def update(driver_id, data):
        data = coerce_date_fields(dict(data), 'fee_exempt_start')
        DriverService._validate(data)
        if data.get('referred_by_id') == driver_id:
            raise ServiceError("A driver cannot refer themselves")
        try:
            driver = Driver.query_active().filter_by(id=driver_id).first()
            if not driver:
                return None
            for key, value in data.items():
                setattr(driver, key, value)
            db.session.commit()
            return driver
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error updating driver: {e}", exc_info=True)
            raise ServiceError("Could not update driver. Please try again later.")

    @staticmethod
    def delete(driver_id):
        try:
            driver = Driver.query_active().filter_by(id=driver_id).first()
            if not driver:
                return False
            # Soft delete the driver instead of hard delete
            driver.is_deleted = True
            db.session.commit()
            return True
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error deleting driver: {e}", exc_info=True)
            raise ServiceError("Could not delete driver. Please try again later.")

    @staticmethod
    def toggle_soft_delete(driver_id, is_deleted):
        try:
            # Get driver including deleted ones for restore functionality
            driver = Driver.query_all().filter_by(id=driver_id).first()
            if not driver:
                return None
            driver.is_deleted = is_deleted
            db.session.commit()
            return driver
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error toggling driver soft delete status: {e}", exc_info=True)
            raise ServiceError("Could not update driver status. Please try again later.")

    @staticmethod
    def approve(driver_id, user_id=None):
        driver = Driver.query_active().filter_by(id=driver_id).first()
        if not driver:
            raise NotFoundError("Driver not found")
        if driver.status != 'pending':
            raise ServiceError(f"Only pending drivers can be approved (status: {driver.status})")
        try:
            driver.status = 'active'
            AuditService.record('driver_approved', 'driver', driver.id, None, user_id)
            db.session.commit()
            return driver
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error approving driver: {e}", exc_info=True)
            raise ServiceError("Could not approve driver. Please try again later.")

    @staticmethod
    def get_admin_fee_exemption(driver_id):
        driver = Driver.query_active().filter_by(id=driver_id).first()
        if not driver:
            raise NotFoundError("Driver not found")
        return exemption_status(driver)

    @staticmethod
    def set_admin_fee_exemption(driver_id, start_date, weeks, reason=None, user_id=None):
        driver = Driver.query_active().filter_by(id=driver_id).first()
        if not driver:
            raise NotFoundError("Driver not found")
        start = parse_date(start_date)
        if start is None:
            raise ServiceError("Exemption start date is required")
        try:
            weeks = int(weeks)
        except (TypeError, ValueError):
            raise ServiceError("Exemption weeks must be a number")
        if weeks <= 0:
            raise ServiceError("Exemption weeks must be positive")
        try:
            driver.fee_exempt_start = start
            driver.fee_exempt_weeks = weeks
            driver.fee_exempt_reason = reason
            driver.fee_exempt_created_by = user_id
            AuditService.record('admin_fee_exemption_set', 'driver', driver.id,
                                {'start_date': start.isoformat(), 'weeks': weeks, 'reason': reason}, user_id)
            db.session.commit()
            return exemption_status(driver)
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error setting admin fee exemption: {e}", exc_info=True)
            raise ServiceError("Could not set admin fee exemption. Please try again later.")

    @staticmethod
    def clear_admin_fee_exemption(driver_id, user_id=None):
        driver = Driver.query_active().filter_by(id=driver_id).first()
        if not driver:
            raise NotFoundError("Driver not found")
        try:
            driver.fee_exempt_start = None
            driver.fee_exempt_weeks = None
            driver.fee_exempt_reason = None
            driver.fee_exempt_created_by = None
            AuditService.record('admin_fee_exemption_cleared', 'driver', driver.id, None, user_id)
            db.session.commit()
            return exemption_status(driver)
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error clearing admin fee exemption: {e}", exc_info=True)
            raise ServiceError("Could not clear admin fee exemption. Please try again later.")
