from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple

from store.models import CartItem

CURRENCY = "₦"

# (field, label, placeholder) for the shipping address form, in display order
ADDRESS_FIELDS: List[Tuple[str, str, str]] = [
    ("full_name", "Full Name", "Jane Doe"),
    ("phone_number", "Phone Number", "+234 800 000 0000"),
    ("street_address", "Street Address", "123 Main St"),
    ("city", "City", "Lagos"),
    ("state", "State", "Lagos (optional)"),
    ("postal_code", "Postal Code", "100001 (optional)"),
    ("country", "Country", "Nigeria"),
]
OPTIONAL_ADDRESS_FIELDS = ("state", "postal_code")


def fmt_money(amount: float) -> str:
    return f"{CURRENCY}{amount:,.2f}"


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[str]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table.

    Args:
        headers: List of column headers, or None to use first row as headers.
        rows: List of rows, each a list of strings.
        aligns: List of alignments ('l', 'c', 'r') for each column.
                Defaults to all center ('c').

    Returns:
        str: Markdown formatted table.
    """
    if not rows:
        return ""

    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = list(map(str, headers))
    rows = [list(map(str, row)) for row in rows]

    if aligns is None:
        aligns = ["c"] * len(headers)
    elif len(aligns) != len(headers):
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {"l": ":---", "c": ":---:", "r": "---:"}

    lines = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join(align_map[a] for a in aligns) + " |",
    ]
    lines += ["| " + " | ".join(row) + " |" for row in rows]
    return "\n".join(lines)


def cart_summary_markdown(items: Iterable[CartItem]) -> str:
    """Order summary shown before checkout: one row per line plus the subtotal."""
    items = list(items)
    rows = [
        [i.product.name, fmt_money(i.product.price), i.quantity, fmt_money(i.line_total)]
        for i in items
    ]
    table = generate_markdown_table(
        ["Product", "Unit Price", "Quantity", "Total"], rows, ["l", "r", "c", "r"]
    )
    subtotal = sum(i.line_total for i in items)
    return f"### Order Summary\n\n{table}\n\n**Subtotal:** {fmt_money(subtotal)}"


def missing_fields(fields: Dict[str, Any]) -> List[str]:
    """Required address fields left blank, in form order."""
    return [
        key
        for key, _, _ in ADDRESS_FIELDS
        if key not in OPTIONAL_ADDRESS_FIELDS and not str(fields.get(key) or "").strip()
    ]
