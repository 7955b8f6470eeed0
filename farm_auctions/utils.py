from flask import current_app, request, jsonify
from datetime import datetime, timedelta, timezone
from functools import wraps
import logging
import jwt

logger = logging.getLogger(__name__)


def get_store():
    return current_app.extensions['auction_store']


def issue_token(user_id):
    exp_time = datetime.now(timezone.utc) + timedelta(hours=current_app.config['TOKEN_TTL_HOURS'])
    payload = {"user_id": user_id, "exp": exp_time}
    return jwt.encode(payload, current_app.config['SECRET_KEY'], algorithm="HS256")


def require_auth(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        header = request.headers.get("Authorization")

        if not header or not header.startswith("Bearer "):
            logger.debug("Missing bearer token in request headers")
            return jsonify({"error": "Authentication required"}), 401

        token = header.split(" ", 1)[1].strip()
        try:
            decoded = jwt.decode(token, current_app.config['SECRET_KEY'], algorithms=["HS256"])
        except jwt.ExpiredSignatureError:
            logger.debug("Token has expired")
            return jsonify({"error": "Token expired"}), 401
        except jwt.InvalidTokenError as e:
            logger.debug(f"Invalid token: {e}")
            return jsonify({"error": "Invalid token"}), 401

        user = get_store().get_user(decoded.get("user_id"))
        if user is None:
            return jsonify({"error": "Invalid authentication"}), 401

        # Attach the caller to the request object for downstream use
        request.user_id = user["id"]
        request.user = user
        return func(*args, **kwargs)
    return wrapper
