from flask import current_app, g
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from modulecms.extensions import db
from modulecms.models.user import User


def current_user_middleware(app):
    @app.before_request
    def load_current_user():
        """
        Attach the caller to ``g.current_user`` when a valid access token is
        sent. Protected routes still enforce auth through their decorators.
        """
        g.current_user = None
        try:
            if verify_jwt_in_request(optional=True) is None:
                return None
        except (JWTExtendedException, PyJWTError) as exc:
            current_app.logger.debug("Ignoring unusable token: %s", exc)
            return None

        user = db.session.get(User, get_jwt_identity())
        if user is not None and user.is_active:
            g.current_user = user
        return None
