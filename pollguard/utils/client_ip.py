from flask import current_app, request


def get_client_ip() -> str:
    """
    First X-Forwarded-For hop, then X-Real-IP, then the socket peer.
    Proxy headers are only honoured when TRUST_PROXY_HEADERS is on.
    """
    if current_app.config.get("TRUST_PROXY_HEADERS", False):
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

    return request.remote_addr or "127.0.0.1"
