"""
Request logging with timing and process memory deltas
"""
import time
import json
import logging
from datetime import datetime
from flask import request, g
import psutil

logger = logging.getLogger(__name__)

# Weekly processing and imports are expected to be slower than CRUD calls
SLOW_REQUEST_MS = 2000


class RequestLogger:
    """Hooks registered on the app in create_app()"""

    @staticmethod
    def before_request():
        g.start_time = time.time()
        g.request_id = f"{int(time.time() * 1000000)}"
        try:
            g.initial_memory = psutil.Process().memory_info().rss
        except psutil.Error as e:
            logger.debug(f"Could not collect initial process metrics: {e}")
            g.initial_memory = 0

    @staticmethod
    def after_request(response):
        if not hasattr(g, 'start_time'):
            return response

        duration_ms = (time.time() - g.start_time) * 1000
        memory_diff = 0
        try:
            if getattr(g, 'initial_memory', 0) > 0:
                memory_diff = psutil.Process().memory_info().rss - g.initial_memory
        except psutil.Error as e:
            logger.debug(f"Could not collect final process metrics: {e}")

        log_data = {
            'timestamp': datetime.utcnow().isoformat(),
            'request_id': getattr(g, 'request_id', 'unknown'),
            'method': request.method,
            'path': request.path,
            'endpoint': request.endpoint,
            'remote_addr': request.remote_addr,
            'duration_ms': round(duration_ms, 2),
            'status_code': response.status_code,
            'memory_delta_mb': round(memory_diff / (1024 * 1024), 3) if memory_diff > 0 else 0,
        }
        if request.args:
            log_data['query_params'] = dict(request.args)

        log_level = logging.INFO
        if response.status_code >= 500:
            log_level = logging.ERROR
        elif response.status_code >= 400:
            log_level = logging.WARNING
        logger.log(log_level, f"REQUEST_LOG: {json.dumps(log_data)}")

        if duration_ms > SLOW_REQUEST_MS:
            logger.warning(f"SLOW_REQUEST: {request.method} {request.path} took {duration_ms:.2f}ms")
        return response
