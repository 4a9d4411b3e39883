"""Logging middleware with sensitive data redaction."""

import re

# Sensitive parameters to redact from URLs
SENSITIVE_PARAMS = [
    "code",
    "code_verifier",
    "code_challenge",
    "token",
    "access_token",
    "refresh_token",
    "client_secret",
    "authorization",
    "bearer",
    "password",
]


def redact_sensitive_data(url: str) -> str:
    """Redact sensitive query parameters from URL.

    Parameter names are matched whole, so ``code`` does not also match
    ``code_challenge_method``.
    """
    redacted = url
    for param in SENSITIVE_PARAMS:
        pattern = rf"(?<![\w-]){param}=([^&\s\"]+)"
        redacted = re.sub(pattern, f"{param}=***REDACTED***", redacted)
    # user:password@host in proxy URLs
    return re.sub(r"//([^/@\s]+)@", "//***REDACTED***@", redacted)
