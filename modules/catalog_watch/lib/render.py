from __future__ import annotations

from collections.abc import Sequence

from .models import Record


def compose_message(site_name: str, new_items: Sequence[Record]) -> str:
    """
    Plain-text notification body:

        New products detected on <site>:
        <name> - <price> - <link>
        ...

    An absent link renders as an empty string.
    """
    lines = [f"New products detected on {site_name}:"]
    lines.extend(f"{r.name} - {r.price} - {r.link or ''}" for r in new_items)
    return "\n".join(lines)


def compose_subject(site_name: str, count: int) -> str:
    noun = "product" if count == 1 else "products"
    # SNS caps subjects at 100 characters
    return f"Catalog Watch: {count} new {noun} on {site_name}"[:100]
