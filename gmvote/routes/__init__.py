from flask import jsonify

from gmvote.routes.admin import register_admin_routes
from gmvote.routes.public import register_public_routes
from gmvote.services.voting.errors import IntegrityViolation, VotingError


def register_error_handlers(app):
    @app.errorhandler(VotingError)
    def handle_voting_error(exc):
        body = {"ok": False, "error": str(exc), "type": type(exc).__name__}
        if isinstance(exc, IntegrityViolation):
            body["kind"] = exc.kind
            body["member_id"] = exc.member_id
        app.logger.warning("%s: %s", type(exc).__name__, exc)
        return jsonify(body), exc.status_code


def register_routes(app):
    register_error_handlers(app)
    register_public_routes(app)
    register_admin_routes(app)
