from functools import wraps
from flask import g
from flask_jwt_extended import jwt_required, get_jwt_identity
from credovae.models.user import ADMIN_ROLES
from credovae.services.account_service import load_principal


def login_required(fn):
    """JWT plus a fresh profile lookup; the caller ends up in g.current_user."""
    @wraps(fn)
    @jwt_required()
    def wrapper(*args, **kwargs):
        g.current_user = load_principal(get_jwt_identity())
        return fn(*args, **kwargs)
    return wrapper


def admin_required(fn):
    """Like login_required, but the stored role must be admin or master_admin."""
    @wraps(fn)
    @jwt_required()
    def wrapper(*args, **kwargs):
        g.current_user = load_principal(get_jwt_identity(), roles=ADMIN_ROLES)
        return fn(*args, **kwargs)
    return wrapper
