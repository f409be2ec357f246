from flask import current_app, request


def client_ip() -> str:
    if current_app.config.get("TRUST_FORWARDED_FOR"):
        forwarded = request.headers.get("X-Forwarded-For", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.remote_addr or "unknown"


def user_agent() -> str:
    return (request.headers.get("User-Agent") or "")[:255]


def expects_json() -> bool:
    """True for XHR/fetch callers that want a JSON error instead of a redirect."""
    if request.is_json:
        return True
    if request.headers.get("X-Requested-With") == "XMLHttpRequest":
        return True
    best = request.accept_mimetypes.best
    return bool(best) and "json" in best
