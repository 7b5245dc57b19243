from flask import Blueprint, request, jsonify
from flask_security import roles_accepted, current_user
import logging
from frota360.extensions import limiter
from frota360.services.import_service import ImportService
from frota360.services.week_service import WeekService
from frota360.services.errors import ServiceError, NotFoundError
from frota360.schemas.week_schema import WeekSchema

imports_bp = Blueprint('imports', __name__)
week_schema = WeekSchema()
week_schema_many = WeekSchema(many=True)

@imports_bp.route('/weeks', methods=['GET'])
@roles_accepted('admin')
def list_weeks():
    try:
        return jsonify(week_schema_many.dump(WeekService.get_all())), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in list_weeks: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@imports_bp.route('/weeks', methods=['POST'])
@roles_accepted('admin')
def create_week():
    try:
        data = request.get_json(silent=True) or {}
        week = WeekService.create_week(data.get('date'))
        return jsonify(week_schema.dump(week)), 201
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in create_week: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@imports_bp.route('/weeks/<week_id>', methods=['GET'])
@roles_accepted('admin')
def get_week(week_id):
    try:
        week = WeekService.get_by_week_id(week_id)
        if not week:
            return jsonify({'error': 'Week not found'}), 404
        result = week_schema.dump(week)
        result['raw_files'] = [
            {
                'id': archive.id,
                'platform': archive.platform,
                'file_name': archive.file_name,
                'row_count': archive.row_count,
                'processed': archive.processed,
            }
            for archive in ImportService.list_raw_files(week_id)
        ]
        return jsonify(result), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in get_week: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500

@imports_bp.route('/imports/upload', methods=['POST'])
@roles_accepted('admin')
@limiter.limit("30 per minute")
def upload_import_file():
    """Store one platform file for a week; rows are aggregated later by /imports/process."""
    try:
        if 'file' not in request.files:
            return jsonify({'error': 'No file selected'}), 400
        archive = ImportService.upload_raw_file(
            request.form.get('platform'),
            request.form.get('week_id'),
            request.files['file'],
            user_id=current_user.id,
        )
        return jsonify({
            'raw_id': archive.id,
            'week_id': archive.week_id,
            'platform': archive.platform,
            'file_name': archive.file_name,
            'row_count': archive.row_count,
        }), 201
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in upload_import_file: {e}", exc_info=True)
        return jsonify({'error': 'An error occurred while processing the file. Please try again.'}), 500

@imports_bp.route('/imports/process', methods=['POST'])
@roles_accepted('admin')
def process_import():
    try:
        data = request.get_json() or {}
        week_id = data.get('week_id') or data.get('weekId')
        raw_ids = data.get('raw_ids') or data.get('rawIds') or []
        result = ImportService.process_import(week_id, raw_ids, user_id=current_user.id)
        return jsonify(result), 200
    except NotFoundError as nf:
        return jsonify({'error': nf.message}), 404
    except ServiceError as se:
        return jsonify({'error': se.message}), 400
    except Exception as e:
        logging.error(f"Unhandled error in process_import: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
