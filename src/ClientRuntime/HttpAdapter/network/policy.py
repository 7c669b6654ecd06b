# === NAVMAP v1 ===
# {
#   "module": "ClientRuntime.HttpAdapter.network.policy",
#   "purpose": "HTTP policy constants: status classes, redirect and retry budgets, request extension keys.",
#   "sections": []
# }
# === /NAVMAP ===

"""HTTP policy constants and defaults.

Defines the wire-level status classes the adapter and middleware agree on,
redirect and retry budgets, and the extension keys of the native request.
"""


# Status classes

SUCCESS_STATUS_MIN = 200

SUCCESS_STATUS_MAX = 299

NO_CONTENT_STATUS_CODES = frozenset({204, 205, 304})

REDIRECT_STATUS_CODES = frozenset({301, 302, 303, 307, 308})

SEE_OTHER = 303

UNAUTHORIZED = 401

UNSUPPORTED_MEDIA_TYPE = 415

RETRY_STATUS_CODES = frozenset({429, 503, 504})


# Redirects

FOLLOW_REDIRECTS = False  # httpx must not follow; RedirectHandler audits each hop

DEFAULT_MAX_REDIRECT = 5

MAX_REDIRECT_LIMIT = 20


# Retries

DEFAULT_MAX_RETRIES = 3

MAX_RETRY_LIMIT = 10

DEFAULT_RETRY_DELAY_SECONDS = 3.0

MAX_RETRY_DELAY_SECONDS = 180.0

RETRY_ATTEMPT_HEADER = "Retry-Attempt"

RETRY_AFTER_HEADER = "Retry-After"


# Native request extensions carrying adapter context to middleware

REQUEST_OPTIONS_EXTENSION = "client_runtime.request_options"

REQUEST_INFORMATION_EXTENSION = "client_runtime.request_information"


__all__ = [
    "SUCCESS_STATUS_MIN",
    "SUCCESS_STATUS_MAX",
    "NO_CONTENT_STATUS_CODES",
    "REDIRECT_STATUS_CODES",
    "SEE_OTHER",
    "UNAUTHORIZED",
    "UNSUPPORTED_MEDIA_TYPE",
    "RETRY_STATUS_CODES",
    "FOLLOW_REDIRECTS",
    "DEFAULT_MAX_REDIRECT",
    "MAX_REDIRECT_LIMIT",
    "DEFAULT_MAX_RETRIES",
    "MAX_RETRY_LIMIT",
    "DEFAULT_RETRY_DELAY_SECONDS",
    "MAX_RETRY_DELAY_SECONDS",
    "RETRY_ATTEMPT_HEADER",
    "RETRY_AFTER_HEADER",
    "REQUEST_OPTIONS_EXTENSION",
    "REQUEST_INFORMATION_EXTENSION",
]
