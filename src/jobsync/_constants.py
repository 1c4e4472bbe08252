"""Internal constants shared across the library."""

BASE_URL = "http://localhost:5260/api"
USER_AGENT = "jobsync/0.1"

#: Seconds a cached GET response stays fresh.
CACHE_TTL_SECONDS: float = 5 * 60
#: Seconds before an in-flight request is abandoned.
REQUEST_TIMEOUT_SECONDS: float = 10.0

AUTH_TOKEN_KEY = "@auth_token"
CURRENT_USER_KEY = "@current_user"
JOBS_CACHE_KEY = "@jobs_cache"

#: Non-JSON error bodies shorter than this are surfaced verbatim.
PLAIN_TEXT_ERROR_MAX_LEN = 100

MUTATING_METHODS: frozenset[str] = frozenset({"POST", "PUT", "DELETE"})
AUTH_FAILURE_STATUSES: frozenset[int] = frozenset({401, 403})
