"""
Selection state carried in URL query parameters.

Each catalog category is serialised as a token list of the form
"priceId:quantity,priceId:quantity" so a selection survives navigation,
reloads and sharing. Parsing is lenient: malformed or non-positive
entries are skipped, never fatal.
"""

from urllib.parse import urlencode, urlsplit, urlunsplit, parse_qsl

CATEGORIES = ("tickets", "guestlists", "reservations", "products", "promotions")
DEFAULT_TAB = "tickets"
DEFAULT_STEP = 1


def parse_quantities(token_list: str | None) -> dict[str, int]:
    """
    Parse "abc:2,def:1" into {"abc": 2, "def": 1}.

    Entries without an id, without a quantity, with a non-integer
    quantity or with a quantity <= 0 are ignored.
    """
    if not token_list:
        return {}

    quantities: dict[str, int] = {}
    for pair in token_list.split(","):
        if not pair:
            continue
        item_id, sep, raw_qty = pair.partition(":")
        item_id = item_id.strip()
        if not sep or not item_id or not raw_qty.strip():
            continue
        try:
            quantity = int(raw_qty.strip())
        except ValueError:
            continue
        if quantity > 0:
            quantities[item_id] = quantity
    return quantities


def serialize_quantities(quantities: dict[str, int]) -> str | None:
    """Inverse of parse_quantities. Returns None when nothing is selected."""
    pairs = [f"{item_id}:{qty}" for item_id, qty in quantities.items() if qty > 0]
    return ",".join(pairs) if pairs else None


def parse_all_quantities(params: dict[str, str | None]) -> dict[str, dict[str, int]]:
    """Parse every known category out of a query-parameter mapping."""
    return {category: parse_quantities(params.get(category)) for category in CATEGORIES}


def serialize_all_quantities(selection: dict[str, dict[str, int]]) -> dict[str, str]:
    """Serialise every non-empty category into query parameters."""
    params = {}
    for category in CATEGORIES:
        serialized = serialize_quantities(selection.get(category, {}))
        if serialized:
            params[category] = serialized
    return params


def create_shareable_url(
    base_url: str,
    selection: dict[str, dict[str, int]],
    step: int | None = None,
    tab: str | None = None,
) -> str:
    """
    Build a URL that restores the current selection.

    `step` and `tab` are only written when they differ from the defaults
    to keep URLs short. Existing unrelated query parameters are kept.
    """
    parts = urlsplit(base_url)
    params = {
        key: value
        for key, value in parse_qsl(parts.query)
        if key not in CATEGORIES and key not in ("step", "tab")
    }

    if step is not None and step != DEFAULT_STEP:
        params["step"] = str(step)
    if tab is not None and tab != DEFAULT_TAB:
        params["tab"] = tab
    params.update(serialize_all_quantities(selection))

    return urlunsplit(parts._replace(query=urlencode(params, safe=":,")))


def update_quantity(
    quantities: dict[str, int],
    price_id: str,
    delta: int,
    max_quantity: int | None = None,
) -> dict[str, int]:
    """Apply a +/- delta, clamped to [0, max_quantity]; zero removes the entry."""
    new_value = max(0, quantities.get(price_id, 0) + delta)
    if max_quantity is not None:
        new_value = min(new_value, max_quantity)

    updated = dict(quantities)
    if new_value > 0:
        updated[price_id] = new_value
    else:
        updated.pop(price_id, None)
    return updated


def total_quantity(selection: dict[str, dict[str, int]]) -> int:
    """Units selected across all categories."""
    return sum(sum(category.values()) for category in selection.values())


def has_selected_items(selection: dict[str, dict[str, int]]) -> bool:
    return total_quantity(selection) > 0
