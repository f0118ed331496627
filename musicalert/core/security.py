REDACTED = "***"


def redact_token(token: str | None, visible: int = 6) -> str:
    """Mask a bearer token or client secret before it reaches a log line."""
    if not token:
        return "None"
    # Short values would be revealed almost entirely by the visible prefix
    if len(token) <= visible:
        return REDACTED
    return token[:visible] + REDACTED
