import secrets

from itsdangerous import BadSignature, URLSafeTimedSerializer

from config import get_settings

TOKEN_MAX_AGE_HOURS = 2


def _serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(settings.csrf_secret, salt="finance-form")


def generate_csrf_token() -> str:
    return _serializer().dumps({"nonce": secrets.token_hex(8)})


def validate_csrf_token(token: str, max_age_hours: int = TOKEN_MAX_AGE_HOURS) -> bool:
    if not token:
        return False
    try:
        data = _serializer().loads(token, max_age=max_age_hours * 3600)
    except BadSignature:
        return False
    return isinstance(data, dict) and "nonce" in data
