from typing import Any, Iterable, List, Tuple, TypeVar

T = TypeVar("T")


def schedule_key(row: Any) -> Tuple[str, str]:
    """(agent_id, name) identity of a schedule row (ORM object or dict)."""
    if isinstance(row, dict):
        return str(row["agent_id"]), row["name"]
    return str(row.agent_id), row.name


def dedupe_schedule_templates(rows: Iterable[T]) -> List[T]:
    """
    Drop rows repeating an earlier (agent_id, name) pair, preserving order.

    "First" is the iteration order of rows; the cloner feeds templates
    ordered by (created_at, id).
    """
    seen = set()
    unique = []
    for row in rows:
        key = schedule_key(row)
        if key in seen:
            continue
        seen.add(key)
        unique.append(row)
    return unique
