"""Case-insensitive wildcard wrapping for substring searches."""

WILDCARD_PREFIX = "(?i).*"
WILDCARD_SUFFIX = ".*"
MATCH_ANY = ".+"


def wrap_wildcard_search(value: str) -> str:
    """Turn a plain search into ``(?i).*<value>.*``; idempotent."""
    if value == MATCH_ANY:
        return value
    if not value.startswith(WILDCARD_PREFIX):
        return f"{WILDCARD_PREFIX}{value}{WILDCARD_SUFFIX}"
    return value


def unwrap_wildcard_search(value: str) -> str:
    """Inverse of ``wrap_wildcard_search``; unwrapped input is returned as is."""
    if value.startswith(WILDCARD_PREFIX) and value.endswith(WILDCARD_SUFFIX):
        return value[len(WILDCARD_PREFIX) : -len(WILDCARD_SUFFIX)]
    return value
