"""
Logging configuration with request ID support.

Web requests get a short request ID; scheduled jobs tag their records
with the job name so both show up in the same log format.
"""
import logging
import threading
import uuid

_local = threading.local()


def set_request_id(value):
    _local.request_id = value


def clear_request_id():
    if hasattr(_local, 'request_id'):
        del _local.request_id


def get_request_id():
    return getattr(_local, 'request_id', None)


class RequestIDFilter(logging.Filter):
    """
    Logging filter to add request ID to log records
    """
    def filter(self, record):
        request_id = getattr(record, 'request_id', None) or get_request_id()
        record.request_id = request_id or 'N/A'
        return True


class RequestIDMiddleware:
    """
    Middleware to generate and attach unique request ID to each request.
    Request ID is available in request.request_id and in all log messages.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())[:8]
        request.request_id = request_id
        set_request_id(request_id)

        try:
            response = self.get_response(request)
        finally:
            clear_request_id()

        response['X-Request-ID'] = request_id
        return response

    def process_exception(self, request, exception):
        """Log exceptions with request ID"""
        request_id = getattr(request, 'request_id', 'N/A')
        logger = logging.getLogger('django.request')
        logger.error(
            f"[{request_id}] Exception: {type(exception).__name__}: {str(exception)}",
            exc_info=True,
            extra={'request_id': request_id}
        )
