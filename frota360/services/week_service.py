import logging
from frota360.extensions import db
from frota360.models.week import Week, WeeklyDataSource, PLATFORMS, WEEK_STATUSES
from frota360.services.errors import ServiceError
from frota360.utils.timezone_utils import get_week_id, get_week_dates, is_valid_week_id


class WeekService:
    @staticmethod
    def get_all(limit=52):
        try:
            return Week.query.order_by(Week.week_id.desc()).limit(limit).all()
        except Exception as e:
            logging.error(f"Error fetching weeks: {e}", exc_info=True)
            raise ServiceError("Could not fetch weeks. Please try again later.")

    @staticmethod
    def get_by_week_id(week_id):
        return Week.query.filter_by(week_id=week_id).first()

    @staticmethod
    def ensure_week(week_id):
        """Get or create a week with its four data sources. Does not commit."""
        if not is_valid_week_id(week_id):
            raise ServiceError(f"Invalid week id: {week_id}")
        week = Week.query.filter_by(week_id=week_id).first()
        if week:
            return week
        week_start, week_end = get_week_dates(week_id)
        week = Week(week_id=week_id, week_start=week_start, week_end=week_end, status='draft')
        for platform in PLATFORMS:
            week.data_sources.append(WeeklyDataSource(platform=platform))
        db.session.add(week)
        db.session.flush()
        logging.info(f"Week {week_id} created")
        return week

    @staticmethod
    def create_week(day=None):
        """Create the week containing `day` (default: today in Lisbon). Idempotent."""
        try:
            week = WeekService.ensure_week(get_week_id(day))
            db.session.commit()
            return week
        except ServiceError:
            db.session.rollback()
            raise
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error creating week: {e}", exc_info=True)
            raise ServiceError("Could not create week. Please try again later.")

    @staticmethod
    def set_status(week, status):
        if status not in WEEK_STATUSES:
            raise ServiceError(f"Invalid week status: {status}")
        week.status = status
        return week

    @staticmethod
    def get_data_source(week, platform):
        for source in week.data_sources:
            if source.platform == platform:
                return source
        source = WeeklyDataSource(platform=platform)
        week.data_sources.append(source)
        return source
