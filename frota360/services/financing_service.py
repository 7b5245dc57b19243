import logging
from frota360.extensions import db
from frota360.models.financing import Financing
from frota360.models.driver import Driver
from frota360.services.errors import ServiceError, NotFoundError
from frota360.utils.timezone_utils import coerce_date_fields, parse_date

FINANCING_TYPES = ('loan', 'discount')


def get_weekly_installment(financing, dynamic=True):
    """
    Installment charged in one week for a single financing.

    An explicit weekly_amount always wins. Otherwise a loan is spread over its
    remaining weeks (or its total weeks when calculation is not dynamic) and a
    discount charges its full amount every week.
    """
    if financing.weekly_amount and financing.weekly_amount > 0:
        return float(financing.weekly_amount)
    amount = float(financing.amount or 0.0)
    if financing.type == 'discount':
        return amount
    weeks = financing.remaining_weeks if dynamic else None
    weeks = weeks or financing.weeks
    if not weeks or weeks <= 0:
        return 0.0
    return amount / weeks


def is_financing_eligible(financing, week_start, week_end, policy='startDateToWeekEnd'):
    if financing.status == 'completed':
        return False
    if financing.type == 'loan' and financing.remaining_weeks is not None and financing.remaining_weeks <= 0:
        return False
    start = parse_date(financing.start_date)
    if start is None:
        return True
    limit = week_start if policy == 'startDateToWeekStart' else week_end
    return start <= limit


def calculate_financing_details(financings, week_start, week_end, financing_config=None):
    financing_config = financing_config or {}
    policy = financing_config.get('eligibilityPolicy', 'startDateToWeekEnd')
    dynamic = financing_config.get('dynamicCalculation', True)

    eligible = [f for f in financings if is_financing_eligible(f, week_start, week_end, policy)]
    installment = sum(get_weekly_installment(f, dynamic) for f in eligible)
    interest_pct = sum(float(f.weekly_interest or 0.0) for f in eligible)
    interest = round(installment * interest_pct / 100.0, 2)
    weekly_with_fees = round(installment + interest, 2)
    has_loan = any(f.type == 'loan' for f in eligible)

    return {
        'type': 'loan' if has_loan else ('discount' if eligible else None),
        'amount': round(installment, 2),
        'weekly_amount': round(installment, 2),
        'weekly_interest': interest_pct,
        'interest': interest,
        'weekly_with_fees': weekly_with_fees,
        'display_amount': weekly_with_fees,
        'total_cost': round(sum(float(f.amount or 0.0) for f in eligible), 2),
        'has_financing': bool(eligible) and weekly_with_fees > 0,
        'is_parcelado': any(f.type == 'loan' and (f.weeks or 0) > 1 for f in eligible),
        'display_label': f"Parcela: €{weekly_with_fees:.2f}" if eligible else 'Sem financiamento',
        'financing_ids': [f.id for f in eligible],
    }


class FinancingService:
    @staticmethod
    def get_all(driver_id=None, status=None):
        try:
            query = Financing.query
            if driver_id:
                query = query.filter_by(driver_id=driver_id)
            if status:
                query = query.filter_by(status=status)
            return query.order_by(Financing.created_at.desc()).all()
        except Exception as e:
            logging.error(f"Error fetching financings: {e}", exc_info=True)
            raise ServiceError("Could not fetch financings. Please try again later.")

    @staticmethod
    def get_by_id(financing_id):
        return db.session.get(Financing, financing_id)

    @staticmethod
    def get_open_for_drivers(driver_ids):
        if not driver_ids:
            return {}
        grouped = {}
        rows = Financing.query.filter(
            Financing.driver_id.in_(driver_ids), Financing.status != 'completed'
        ).all()
        for financing in rows:
            grouped.setdefault(financing.driver_id, []).append(financing)
        return grouped

    @staticmethod
    def create(data):
        data = coerce_date_fields(dict(data), 'start_date')
        if data.get('type', 'loan') not in FINANCING_TYPES:
            raise ServiceError(f"Invalid financing type: {data.get('type')}")
        if not Driver.query_active().filter_by(id=data.get('driver_id')).first():
            raise NotFoundError("Driver not found")
        try:
            financing = Financing(**data)
            if financing.type == 'loan' and financing.remaining_weeks is None:
                financing.remaining_weeks = financing.weeks
            db.session.add(financing)
            db.session.commit()
            logging.info(f"Financing {financing.id} created for driver {financing.driver_id}")
            return financing
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error creating financing: {e}", exc_info=True)
            raise ServiceError("Could not create financing. Please try again later.")

    @staticmethod
    def update(financing_id, data):
        data = coerce_date_fields(dict(data), 'start_date')
        try:
            financing = db.session.get(Financing, financing_id)
            if not financing:
                return None
            for key, value in data.items():
                setattr(financing, key, value)
            db.session.commit()
            return financing
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error updating financing: {e}", exc_info=True)
            raise ServiceError("Could not update financing. Please try again later.")

    @staticmethod
    def delete(financing_id):
        try:
            financing = db.session.get(Financing, financing_id)
            if not financing:
                return False
            db.session.delete(financing)
            db.session.commit()
            return True
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error deleting financing: {e}", exc_info=True)
            raise ServiceError("Could not delete financing. Please try again later.")

    @staticmethod
    def decrement_for_payment(driver_id, week_start, week_end, financing_config=None):
        """
        Count one paid installment on every eligible loan of the driver.
        Loans reaching zero remaining weeks are completed. Does not commit.

        Returns:
            ids of the loans that were decremented
        """
        financing_config = financing_config or {}
        policy = financing_config.get('eligibilityPolicy', 'startDateToWeekEnd')
        touched = []
        loans = Financing.query.filter_by(driver_id=driver_id, type='loan').filter(
            Financing.status != 'completed'
        ).all()
        for loan in loans:
            if not is_financing_eligible(loan, week_start, week_end, policy):
                continue
            remaining = loan.remaining_weeks if loan.remaining_weeks is not None else (loan.weeks or 0)
            loan.remaining_weeks = max(0, remaining - 1)
            if loan.remaining_weeks == 0:
                loan.status = 'completed'
            touched.append(loan.id)
        return touched
