from functools import wraps
import hmac

from flask import current_app, request

from quizlive.errors import Unauthorized


def check_admin_passcode(passcode) -> bool:
    expected = current_app.config.get('ADMIN_PASSCODE') or ''
    if not passcode or not expected:
        return False
    return hmac.compare_digest(str(passcode), str(expected))


def admin_required(view):
    """Gate an admin route on the shared `admin-passcode` header."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not check_admin_passcode(request.headers.get('admin-passcode')):
            raise Unauthorized()
        return view(*args, **kwargs)
    return wrapper
