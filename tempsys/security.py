# tempsys/security.py
from functools import wraps
from flask import abort
from flask_login import current_user

def user_has_role(*roles):
    if not current_user.is_authenticated:
        return False
    return (current_user.role or "") in roles

def role_required(*required_roles):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401)
            if not user_has_role(*required_roles):
                abort(403)
            return fn(*args, **kwargs)
        return wrapper
    return decorator
