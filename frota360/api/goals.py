from flask import Blueprint, request, jsonify
from flask_security import roles_accepted
import logging
from frota360.extensions import db
from frota360.services.goals_service import GoalsService, GoalRewardService
from frota360.services.errors import ServiceError
from frota360.schemas.goal_reward_schema import GoalRewardSchema

goals_bp = Blueprint('goals', __name__)
schema = GoalRewardSchema(session=db.session)
schema_many = GoalRewardSchema(many=True, session=db.session)

@goals_bp.route('/goal-rewards', methods=['GET'])
@roles_accepted('admin')
def list_goal_rewards():
    try:
        active_only = request.args.get('active', 'false').lower() == 'true'
        return jsonify(schema_many.dump(GoalRewardService.get_all(active_only))), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in list_goal_rewards: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@goals_bp.route('/goal-rewards', methods=['POST'])
@roles_accepted('admin')
def create_goal_reward():
    try:
        data = request.get_json() or {}
        errors = schema.validate(data)
        if errors:
            return jsonify(errors), 400
        return jsonify(schema.dump(GoalRewardService.create(data))), 201
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in create_goal_reward: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@goals_bp.route('/goal-rewards/<int:reward_id>', methods=['PUT'])
@roles_accepted('admin')
def update_goal_reward(reward_id):
    try:
        data = request.get_json() or {}
        errors = schema.validate(data, partial=True)
        if errors:
            return jsonify(errors), 400
        reward = GoalRewardService.update(reward_id, data)
        if not reward:
            return jsonify({'error': 'Goal reward not found'}), 404
        return jsonify(schema.dump(reward)), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in update_goal_reward: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@goals_bp.route('/goal-rewards/<int:reward_id>', methods=['DELETE'])
@roles_accepted('admin')
def delete_goal_reward(reward_id):
    try:
        if not GoalRewardService.delete(reward_id):
            return jsonify({'error': 'Goal reward not found'}), 404
        return jsonify({'message': 'Goal reward deleted'}), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in delete_goal_reward: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@goals_bp.route('/goals/<int:year>', methods=['GET'])
@roles_accepted('admin')
def company_goals(year):
    try:
        return jsonify(GoalsService.build_goals_for_year(year)), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in company_goals: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
