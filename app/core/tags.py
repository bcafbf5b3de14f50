"""Category tag parsing shared by user interests and community categories."""

import json
from typing import Any


def parse_tags(raw: Any) -> list[str]:
    """Accept a list, a JSON array string or a comma-separated string.

    Tags come back stripped, lower-cased and de-duplicated, in input order.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = raw.split(",")
        items = parsed if isinstance(parsed, list) else [parsed]
    elif isinstance(raw, (list, tuple, set)):
        items = list(raw)
        if len(items) == 1 and isinstance(items[0], str):
            return parse_tags(items[0])
    else:
        items = [raw]

    tags: list[str] = []
    for item in items:
        tag = str(item).strip().lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags
