from flask import current_app, jsonify
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException
from modulecms.application.exceptions import ActionError
from modulecms.domain.invariants.exceptions import InvariantViolation


def register_error_handlers(app):
    @app.errorhandler(ActionError)
    def handle_action_error(error: ActionError):
        if error.status_code >= 500:
            current_app.logger.error("Action failed: %s", error.message)
        response = jsonify(error.to_dict())
        response.status_code = error.status_code
        return response

    @app.errorhandler(InvariantViolation)
    def handle_invariant_violation(error):
        response = jsonify({
            "error": "InvariantViolation",
            "message": str(error)
        })
        response.status_code = 400
        return response

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        response = jsonify({
            "error": "ValidationError",
            "message": "Payload failed validation",
            "details": error.errors(include_url=False, include_input=False, include_context=False),
        })
        response.status_code = 422
        return response

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        response = jsonify({
            "error": error.name,
            "message": error.description,
        })
        response.status_code = error.code or 500
        return response
