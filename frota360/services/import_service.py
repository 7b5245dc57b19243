import io
import json
import os
import logging
from datetime import datetime

import pandas as pd
from flask import current_app
from werkzeug.utils import secure_filename

from frota360.extensions import db
from frota360.models.driver import Driver
from frota360.models.raw_file_archive import RawFileArchive
from frota360.models.week import PLATFORMS
from frota360.models.weekly_normalized_data import WeeklyNormalizedData
from frota360.services.aggregation import (
    DriverLookup,
    aggregate_platform_rows,
    build_data_weekly_key,
    consolidate_entries,
)
from frota360.services.audit_service import AuditService
from frota360.services.errors import ServiceError, NotFoundError
from frota360.services.week_service import WeekService
from frota360.utils.timezone_utils import is_valid_week_id


def read_upload_rows(file_name, content, max_rows=None):
    """Parse an uploaded CSV or Excel file into a list of row dicts."""
    file_ext = os.path.splitext(file_name.lower())[1]
    buffer = io.BytesIO(content)
    if file_ext == '.csv':
        df = pd.read_csv(buffer, sep=None, engine='python')
    else:
        df = pd.read_excel(buffer)
    df = df.dropna(how='all')
    df.columns = [str(column).strip() for column in df.columns]
    if max_rows and len(df) > max_rows:
        raise ServiceError(f"File contains too many rows ({len(df)}). Maximum allowed is {max_rows} rows.")
    # Round trip through JSON so timestamps and NaN become plain values
    return json.loads(df.to_json(orient='records', date_format='iso'))


class ImportService:
    @staticmethod
    def upload_raw_file(platform, week_id, file, user_id=None):
        if platform not in PLATFORMS:
            raise ServiceError(f"Unknown platform: {platform}")
        if not is_valid_week_id(week_id):
            raise ServiceError(f"Invalid week id: {week_id}")
        if file is None or not file.filename:
            raise ServiceError("No file selected")

        allowed_extensions = current_app.config.get('ALLOWED_FILE_EXTENSIONS', {'.xlsx', '.xls', '.csv'})
        file_ext = os.path.splitext(file.filename.lower())[1]
        if file_ext not in allowed_extensions:
            raise ServiceError(f'Invalid file type. Please upload one of: {", ".join(sorted(allowed_extensions))}')

        content = file.read()
        max_file_size = current_app.config.get('MAX_FILE_SIZE', 10 * 1024 * 1024)
        if len(content) > max_file_size:
            max_size_mb = max_file_size // (1024 * 1024)
            raise ServiceError(f'File size too large. Please upload a file smaller than {max_size_mb}MB')
        if not content:
            raise ServiceError('File is empty')

        filename = secure_filename(file.filename)
        try:
            rows = read_upload_rows(filename, content, current_app.config.get('MAX_ROWS_PER_FILE'))
        except ServiceError:
            raise
        except Exception as e:
            logging.error(f"Error reading {platform} file {filename}: {e}", exc_info=True)
            raise ServiceError("Could not read the uploaded file. Check its format and try again.")

        return ImportService.archive_rows(platform, week_id, filename, rows, user_id)

    @staticmethod
    def archive_rows(platform, week_id, file_name, rows, user_id=None):
        if platform not in PLATFORMS:
            raise ServiceError(f"Unknown platform: {platform}")
        try:
            week = WeekService.ensure_week(week_id)
            archive = RawFileArchive(
                week_id=week_id,
                platform=platform,
                file_name=file_name,
                rows=rows,
                row_count=len(rows),
                imported_by=user_id,
            )
            db.session.add(archive)
            db.session.flush()
            source = WeekService.get_data_source(week, platform)
            source.status = 'pending'
            source.last_import_at = datetime.utcnow()
            db.session.commit()
            logging.info(f"Archived {len(rows)} {platform} rows for {week_id} as {archive.id}")
            return archive
        except ServiceError:
            db.session.rollback()
            raise
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error archiving {platform} file: {e}", exc_info=True)
            raise ServiceError("Could not store the uploaded file. Please try again later.")

    @staticmethod
    def process_import(week_id, raw_ids, user_id=None):
        """
        Aggregate archived files of a week into WeeklyNormalizedData.

        The normalized data of every platform present in the batch is replaced,
        so re-processing a platform never double counts.
        """
        if not is_valid_week_id(week_id):
            raise ServiceError(f"Invalid week id: {week_id}")
        if not raw_ids:
            raise ServiceError("No files selected for processing")

        warnings = []
        archives = []
        for raw_id in raw_ids:
            archive = db.session.get(RawFileArchive, raw_id)
            if archive is None or archive.week_id != week_id:
                warnings.append(f"Ficheiro {raw_id} não encontrado para {week_id}.")
                continue
            archives.append(archive)
        if not archives:
            raise NotFoundError("No raw files found for this week")

        try:
            week = WeekService.ensure_week(week_id)
            lookup = DriverLookup(Driver.query_active().all())

            entries_by_platform = {}
            refs_by_platform = {}
            for archive in archives:
                entries, platform_warnings = aggregate_platform_rows(archive.platform, archive.rows, lookup)
                warnings.extend(platform_warnings)
                refs_by_platform.setdefault(archive.platform, []).append(archive.archive_ref)
                for entry in entries:
                    driver = entry['driver']
                    entries_by_platform.setdefault(archive.platform, []).append({
                        'data_key': build_data_weekly_key(week_id, archive.platform, entry['reference_id']),
                        'platform': archive.platform,
                        'reference_id': entry['reference_id'],
                        'reference_label': entry['reference_label'],
                        'driver_id': driver.id if driver else None,
                        'driver_name': driver.name if driver else None,
                        'vehicle_plate': driver.vehicle_plate if driver else entry['reference_label'],
                        'total_value': entry['total_value'],
                        'total_trips': entry['total_trips'],
                        'raw_data_ref': [archive.archive_ref],
                    })

            written = 0
            for platform in refs_by_platform:
                WeeklyNormalizedData.query.filter_by(week_id=week_id, platform=platform).delete()
                consolidated = consolidate_entries(entries_by_platform.get(platform, []))
                for entry in consolidated:
                    db.session.add(WeeklyNormalizedData(
                        week_id=week_id,
                        week_start=week.week_start,
                        week_end=week.week_end,
                        **entry
                    ))
                written += len(consolidated)

                source = WeekService.get_data_source(week, platform)
                source.status = 'complete'
                source.origin = 'manual'
                source.records_count = len(consolidated)
                source.drivers_count = len({e['driver_id'] for e in consolidated if e['driver_id']})
                source.archive_ref = ','.join(refs_by_platform[platform])
                source.last_error = None
                source.last_import_at = datetime.utcnow()

            now = datetime.utcnow()
            for archive in archives:
                archive.processed = True
                archive.processed_at = now
            if week.status == 'draft':
                week.status = 'imported'

            AuditService.record(
                'import_processed', 'week', week_id,
                {'platforms': sorted(refs_by_platform), 'raw_ids': [a.id for a in archives]},
                user_id,
            )
            db.session.commit()
            logging.info(f"Processed import for {week_id}: {written} normalized lines, {len(warnings)} warnings")
            return {
                'week_id': week_id,
                'platforms_processed': sorted(refs_by_platform),
                'data_weekly_docs': written,
                'warnings': warnings,
            }
        except ServiceError:
            db.session.rollback()
            raise
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error processing import for {week_id}: {e}", exc_info=True)
            raise ServiceError("Could not process the import. Please try again later.")

    @staticmethod
    def list_raw_files(week_id):
        return RawFileArchive.query.filter_by(week_id=week_id).order_by(RawFileArchive.id).all()
