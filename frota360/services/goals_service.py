import logging
from datetime import date, datetime, time

from frota360.extensions import db
from frota360.models.driver import Driver
from frota360.models.goal_reward import GoalReward
from frota360.services.errors import ServiceError
from frota360.services.settings_service import SettingsService
from frota360.utils.timezone_utils import coerce_date_fields, display_today

QUARTER_BOUNDS = {
    'Q1': ((1, 1), (3, 31)),
    'Q2': ((4, 1), (6, 30)),
    'Q3': ((7, 1), (9, 30)),
    'Q4': ((10, 1), (12, 31)),
}


def goal_status(progress, quarter_end, today):
    if progress >= 100:
        return 'completed'
    if today > quarter_end:
        return 'overdue'
    if progress > 0:
        return 'in_progress'
    return 'not_started'


class GoalsService:
    @staticmethod
    def build_goals_for_year(year, today=None):
        """Company quarterly goals on active driver count."""
        today = today or display_today()
        targets = SettingsService.get_goals_config()
        goals = []
        for quarter, (start, end) in QUARTER_BOUNDS.items():
            if quarter not in targets:
                continue
            target = targets[quarter]
            quarter_start = date(year, *start)
            quarter_end = date(year, *end)
            current = Driver.query_active().filter(
                Driver.status == 'active',
                Driver.created_at <= datetime.combine(quarter_end, time.max),
            ).count()
            progress = min(current / target * 100.0, 100.0) if target > 0 else 0.0
            goals.append({
                'quarter': quarter,
                'year': year,
                'metric': 'active_drivers',
                'target': target,
                'current': current,
                'progress': round(progress, 1),
                'start_date': quarter_start.isoformat(),
                'end_date': quarter_end.isoformat(),
                'status': goal_status(progress, quarter_end, today),
            })
        summary = {
            'total_goals': len(goals),
            'completed': sum(1 for g in goals if g['status'] == 'completed'),
            'average_progress': round(sum(g['progress'] for g in goals) / len(goals), 1) if goals else 0.0,
        }
        return {'goals': goals, 'summary': summary}


class GoalRewardService:
    @staticmethod
    def get_all(active_only=False):
        try:
            query = GoalReward.query
            if active_only:
                query = query.filter_by(active=True)
            return query.order_by(GoalReward.level, GoalReward.id).all()
        except Exception as e:
            logging.error(f"Error fetching goal rewards: {e}", exc_info=True)
            raise ServiceError("Could not fetch goal rewards. Please try again later.")

    @staticmethod
    def create(data):
        data = coerce_date_fields(dict(data), 'start_date')
        try:
            reward = GoalReward(**data)
            db.session.add(reward)
            db.session.commit()
            return reward
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error creating goal reward: {e}", exc_info=True)
            raise ServiceError("Could not create goal reward. Please try again later.")

    @staticmethod
    def update(reward_id, data):
        data = coerce_date_fields(dict(data), 'start_date')
        try:
            reward = db.session.get(GoalReward, reward_id)
            if not reward:
                return None
            for key, value in data.items():
                setattr(reward, key, value)
            db.session.commit()
            return reward
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error updating goal reward: {e}", exc_info=True)
            raise ServiceError("Could not update goal reward. Please try again later.")

    @staticmethod
    def delete(reward_id):
        try:
            reward = db.session.get(GoalReward, reward_id)
            if not reward:
                return False
            db.session.delete(reward)
            db.session.commit()
            return True
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error deleting goal reward: {e}", exc_info=True)
            raise ServiceError("Could not delete goal reward. Please try again later.")
