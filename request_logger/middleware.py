"""Host integration — hook the recorder into a WSGI app or a Flask app.

Either wrap any WSGI application::

    app.wsgi_app = RequestLoggerMiddleware(app.wsgi_app, recorder, tracker)

or register callbacks on a Flask app's own request hooks::

    install(app, recorder, tracker)

Use one or the other, not both, or every request is recorded twice.
"""

from flask import Flask, g, request
from werkzeug.wsgi import ClosingIterator

from request_logger.models import RequestInfo
from request_logger.queries import QueryTracker
from request_logger.recorder import RequestRecorder


def request_info_from_environ(environ: dict) -> RequestInfo:
    """Build RequestInfo from a WSGI environ."""
    uri = environ.get("REQUEST_URI") or environ.get("RAW_URI")
    if not uri:
        uri = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")
        query = environ.get("QUERY_STRING", "")
        if query:
            uri = f"{uri}?{query}"
    return RequestInfo(
        method=environ.get("REQUEST_METHOD", ""),
        uri=uri,
        content_length=environ.get("CONTENT_LENGTH"),
        user_agent=environ.get("HTTP_USER_AGENT", ""),
        ip=environ.get("REMOTE_ADDR", ""),
    )


class RequestLoggerMiddleware:
    """WSGI middleware: record at request start, patch when the response is closed."""

    def __init__(self, app, recorder: RequestRecorder, tracker: QueryTracker | None = None):
        self._app = app
        self._recorder = recorder
        self._tracker = tracker

    def _query_count(self) -> int:
        return self._tracker.count() if self._tracker is not None else 0

    def __call__(self, environ, start_response):
        info = request_info_from_environ(environ)
        if self._tracker is not None:
            self._tracker.reset(info.uri)
        handle = self._recorder.start(info)

        def finish():
            self._recorder.finish(handle, self._query_count())

        try:
            response = self._app(environ, start_response)
        except Exception:
            finish()
            raise
        return ClosingIterator(response, finish)


def install(app: Flask, recorder: RequestRecorder, tracker: QueryTracker | None = None):
    """Register start/finish callbacks on the Flask app's request hooks."""

    @app.before_request
    def _start_request_record():
        info = request_info_from_environ(request.environ)
        if tracker is not None:
            tracker.reset(info.uri)
        g.request_log_handle = recorder.start(info)

    @app.teardown_request
    def _finish_request_record(_exc):
        handle = g.pop("request_log_handle", None)
        recorder.finish(handle, tracker.count() if tracker is not None else 0)
