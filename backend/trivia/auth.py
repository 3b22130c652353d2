"""Admin authorization.

The admin credential is a shared token supplied through configuration. It
is hashed with bcrypt at startup and candidate tokens are checked against
the hash, so the plain secret never lives in source and comparison time
does not depend on how much of the candidate matches.
"""

from flask import current_app, request
from flask_login import UserMixin

from trivia import bcrypt, login_manager
from trivia.errors import AuthorizationError

ADMIN_HEADER = 'X-Admin-Token'


class AdminPrincipal(UserMixin):
    id = 'admin'


class AdminAuthorizer:
    extension_key = 'admin_token_hash'

    def init_app(self, flask_app):
        token = flask_app.config.get('ADMIN_TOKEN')
        token_hash = bcrypt.generate_password_hash(token).decode('utf-8') if token else None
        flask_app.extensions[self.extension_key] = token_hash
        if token_hash is None:
            flask_app.logger.warning("[admin] ADMIN_TOKEN not configured; admin endpoints are disabled")

    def check(self, candidate) -> bool:
        token_hash = current_app.extensions.get(self.extension_key)
        if not token_hash or not isinstance(candidate, str) or not candidate:
            return False
        return bcrypt.check_password_hash(token_hash, candidate)


admin_auth = AdminAuthorizer()


def _candidate_token():
    header = request.headers.get(ADMIN_HEADER)
    if header:
        return header
    body = request.get_json(silent=True)
    if isinstance(body, dict) and body.get('adminCode'):
        return body.get('adminCode')
    return request.args.get('adminCode')


@login_manager.request_loader
def load_admin_from_request(req):
    if admin_auth.check(_candidate_token()):
        return AdminPrincipal()
    return None


@login_manager.unauthorized_handler
def reject_unauthorized():
    current_app.logger.warning(f"[admin-denied] {request.method} {request.path} from {request.remote_addr}")
    raise AuthorizationError('Invalid admin code.')
