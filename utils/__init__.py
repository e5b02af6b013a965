"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, parse_iso, deadline_after, seconds_until
from utils.phone import (
    digits_only,
    normalize_country,
    expected_length,
    has_valid_length,
    format_phone,
    same_number,
)
from utils.url_state import (
    parse_quantities,
    serialize_quantities,
    parse_all_quantities,
    serialize_all_quantities,
    create_shareable_url,
)
