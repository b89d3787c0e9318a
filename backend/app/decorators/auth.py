from functools import wraps
from flask import abort, current_app
from flask_jwt_extended import verify_jwt_in_request
from app.services.policy import can, current_role


def require_action(action_key: str):
    """Gate a view on the route permission resolver.

    ``action_key`` may reference view arguments, e.g. '/brands/{item_id}/edit';
    they are substituted before resolving so parameterized rules match.
    """
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            key = action_key.format(**kwargs)
            if not can(key):
                current_app.logger.debug('Denied %s for role %s', key, current_role())
                abort(403, description='Missing permission')
            return fn(*args, **kwargs)
        wrapper.required_action = action_key
        return wrapper
    return outer
