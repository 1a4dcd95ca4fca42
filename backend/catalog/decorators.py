# Overview: Session decorator for admin API routes.

from functools import wraps
from flask import g, session

from .extensions import get_store
from .validation import AuthorizationError, NotFoundError
from .services import auth_service


def require_admin(f):
    """
    Require an authenticated admin session.

    Sets g.current_admin to the Admin record.

    Raises AuthorizationError (answered 401 by the app) if:
    - No admin_id in the session cookie
    - The admin no longer exists (session is cleared)
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        admin_id = session.get("admin_id")
        if not admin_id:
            raise AuthorizationError("Unauthorized")

        try:
            admin = auth_service.get_admin(get_store(), admin_id)
        except NotFoundError:
            session.clear()
            raise AuthorizationError("Unauthorized")

        g.current_admin = admin
        return f(*args, **kwargs)

    return decorated_function
