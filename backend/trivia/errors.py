"""Quiz error taxonomy and the handlers that turn it into JSON responses."""

from flask import jsonify
from werkzeug.exceptions import HTTPException


class QuizError(Exception):
    status_code = 500
    default_message = 'Unexpected error.'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(QuizError):
    status_code = 400
    default_message = 'Invalid request.'


class InsufficientDataError(QuizError):
    status_code = 400
    default_message = 'Not enough questions available.'


class AuthorizationError(QuizError):
    status_code = 403
    default_message = 'Invalid admin code.'


class NotFoundError(QuizError):
    status_code = 404
    default_message = 'Not found.'


class AlreadySubmittedError(QuizError):
    status_code = 409
    default_message = 'Session already submitted.'


class ExpiredError(QuizError):
    status_code = 410
    default_message = 'Session expired.'


class RateLimitedError(QuizError):
    status_code = 429
    default_message = 'Too many requests.'


class StorageError(QuizError):
    status_code = 500
    default_message = 'Storage failure.'


def register_error_handlers(flask_app):
    @flask_app.errorhandler(QuizError)
    def handle_quiz_error(exc):
        if isinstance(exc, StorageError):
            flask_app.logger.error(f"[storage-error] {exc.message}", exc_info=exc.__cause__ or exc)
        return jsonify({'error': exc.message}), exc.status_code

    @flask_app.errorhandler(HTTPException)
    def handle_http_error(exc):
        # 404 for unknown routes, 405, 413 from MAX_CONTENT_LENGTH, ...
        return jsonify({'error': exc.description or exc.name}), exc.code
