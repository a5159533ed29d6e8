"""
Flask web application for the syllabus schedule extractor.

A small JSON API in front of the extraction engine:
- POST /api/extract: upload one or more schedule files, get assignments back
- POST /api/export/<fmt>: turn (possibly edited) assignments into a
  planner CSV, a plain CSV or an .ics file
- GET /health: liveness check
"""

import io
import logging
import os
from datetime import date
from typing import Any, Dict, List, Optional
from flask import Flask, request, send_file, jsonify
from werkzeug.utils import secure_filename
from werkzeug.exceptions import RequestEntityTooLarge

from .engine import ScheduleExtractor
from .exporters import planner_csv, generic_csv
from .icalendar_gen import ICalendarGenerator
from .models import AssignmentRecord, ExtractionSettings, FileError
from .workbook import SUPPORTED_EXTENSIONS

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {ext.lstrip('.') for ext in SUPPORTED_EXTENSIONS}
DEFAULT_MAX_UPLOAD_MB = 16

EXPORT_FORMATS = {
    'planner': ('power_planner_import.csv', 'text/csv'),
    'csv': ('assignments.csv', 'text/csv'),
    'ics': ('assignments.ics', 'text/calendar'),
}


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed.

    Args:
        filename: Name of the uploaded file

    Returns:
        True if file extension is allowed, False otherwise
    """
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def records_from_json(items: Any) -> List[AssignmentRecord]:
    """Rebuild records from the JSON assignment shape, dropping invalid ones.

    Args:
        items: List of dicts with title, dueDate, course, description, type
            and optionally sourceFile

    Returns:
        List of valid AssignmentRecord objects
    """
    if not isinstance(items, list):
        return []
    records = []
    for item in items:
        if not isinstance(item, dict):
            continue
        record = AssignmentRecord.create(
            title=item.get('title'),
            due=item.get('dueDate'),
            course=item.get('course'),
            description=item.get('description'),
            type=item.get('type'),
            source_file=item.get('sourceFile'),
        )
        if record is None:
            logger.debug("Dropping invalid assignment in export request: %r", item)
            continue
        records.append(record)
    return records


def _error(message: str, status: int):
    return jsonify({'error': message}), status


def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    """Create the Flask application.

    Args:
        config: Extra Flask config values (e.g. TESTING)

    Returns:
        Configured Flask app
    """
    app = Flask(__name__)
    app.secret_key = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')

    max_upload_mb = int(os.getenv('MAX_UPLOAD_MB', DEFAULT_MAX_UPLOAD_MB))
    app.config['MAX_CONTENT_LENGTH'] = max_upload_mb * 1024 * 1024
    if config:
        app.config.update(config)

    @app.route('/health')
    def health():
        """Liveness check."""
        return jsonify({'status': 'ok'})

    @app.route('/api/extract', methods=['POST'])
    def extract():
        """Extract assignments from uploaded schedule files.

        Expects multipart field `files` (one or more files) and an optional
        `today` field (YYYY-MM-DD) used for past-due filtering.

        Returns:
            JSON with assignments, per-file errors and an outcome summary
        """
        uploads = [f for f in request.files.getlist('files') if f and f.filename]
        if not uploads:
            return _error('No files selected. Please choose a schedule file.', 400)

        today = None
        today_value = request.form.get('today', '').strip()
        if today_value:
            try:
                today = date.fromisoformat(today_value)
            except ValueError:
                return _error(f'Invalid date for today: {today_value}', 400)

        files = []
        rejected = []
        for upload in uploads:
            filename = secure_filename(upload.filename) or 'upload'
            if not allowed_file(upload.filename):
                rejected.append(FileError(filename, 'Invalid file type. Please upload an .xlsx, .xls or .csv file.'))
                continue
            files.append((filename, upload.read()))

        extractor = ScheduleExtractor(ExtractionSettings(today=today))
        result = extractor.extract_files(files)
        result.errors = rejected + result.errors
        result.files_processed += len(rejected)

        return jsonify(result.to_dict())

    @app.route('/api/export/<fmt>', methods=['POST'])
    def export(fmt: str):
        """Export assignments as a downloadable file.

        Expects a JSON body with `assignments` and optionally
        `courseOverride` and `includeDescriptions` (planner format only).

        Args:
            fmt: "planner", "csv" or "ics"
        """
        if fmt not in EXPORT_FORMATS:
            return _error(f'Unknown export format: {fmt}', 404)

        payload = request.get_json(silent=True) or {}
        records = records_from_json(payload.get('assignments'))
        if not records:
            return _error('No assignments to export', 400)

        if fmt == 'ics':
            content = ICalendarGenerator().to_ics(records)
        elif fmt == 'csv':
            content = generic_csv(records).encode('utf-8')
        else:
            content = planner_csv(
                records,
                course_override=payload.get('courseOverride') or '',
                include_descriptions=payload.get('includeDescriptions', True) is not False,
            ).encode('utf-8')

        download_name, mimetype = EXPORT_FORMATS[fmt]
        return send_file(
            io.BytesIO(content),
            as_attachment=True,
            download_name=download_name,
            mimetype=mimetype
        )

    @app.errorhandler(RequestEntityTooLarge)
    def too_large(error):
        """Handle oversized uploads."""
        return _error(f'File too large. Maximum size is {max_upload_mb}MB.', 413)

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        return _error('Not found', 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle 405 errors."""
        return _error('Method not allowed', 405)

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        logger.error("Internal server error: %s", getattr(error, 'original_exception', error))
        return _error('Internal server error', 500)

    return app


app = create_app()


if __name__ == '__main__':
    # Run development server
    logging.basicConfig(level=logging.INFO)
    app.run(debug=True, host='0.0.0.0', port=5000)
