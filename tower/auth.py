# Control Tower Auth
# Admin checks for the admin endpoints
#
# Sign-in happens in front of these apps; the proxy passes the signed-in
# user's email in the X-User-Email header.

from functools import wraps

from flask import request, jsonify

from .config import FALLBACK_ADMIN_EMAILS

USER_EMAIL_HEADER = 'X-User-Email'


def get_request_email():
    email = request.headers.get(USER_EMAIL_HEADER, '').strip()
    return email.lower() or None


def is_admin(email, admin_config):
    """Check an email against the configured admins (or the built-in list)"""
    if not email:
        return False
    admin_emails = admin_config.get('adminEmails') if isinstance(admin_config, dict) else None
    if not isinstance(admin_emails, list) or not admin_emails:
        admin_emails = FALLBACK_ADMIN_EMAILS
    return email.lower() in [e.lower() for e in admin_emails if isinstance(e, str)]


def admin_required(get_store):
    """Decorator for admin-only routes.

    get_store returns the ConfigStore to read the admin list from; it is
    called per request so tests can swap the store.
    """
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            email = get_request_email()
            if not email:
                return jsonify({'error': 'Unauthorized'}), 401
            if not is_admin(email, get_store().get_admin_config()):
                return jsonify({'error': 'Access denied. Admin privileges required.'}), 403
            return view(*args, **kwargs)
        return wrapper
    return decorator
