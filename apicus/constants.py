SUPPORTED_METRIC_TYPES = {
    "users",
    "storage",
    "api",
    "rate",
    "quota",
    "other",
    "usage",
}

# usage status bands, percent of the current plan threshold
WARNING_USAGE_PERCENT = 80
CRITICAL_USAGE_PERCENT = 100

DEFAULT_PROJECTION_DAYS = 30
MAX_PROJECTION_DAYS = 365

CATALOG_ROOT_ENV = "APICUS_CATALOG_ROOT"

MAX_SIMULATED_VALUE = 1_000_000_000_000
MAX_STACK_SIZE = 100
MAX_REQUEST_BODY_BYTES = 1_048_576
