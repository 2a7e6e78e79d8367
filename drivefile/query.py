"""Drive v3 search expression builder."""

from drivefile.models.drive import SearchPredicate


def _quote(value: str) -> str:
    """Escape single quotes so a value cannot close its clause early."""
    return value.replace("'", "\\'")


def build_search_query(predicate: SearchPredicate) -> str:
    """Build a ``q`` filter from the present fields of ``predicate``.

    Clauses come out in a fixed order (mimeType, parents, name, trashed) and are
    joined with ``and``. Trashed files are excluded unless ``trashed`` is given.
    """
    conditions: list[str] = []

    if predicate.mime_type:
        conditions.append(f"mimeType='{_quote(predicate.mime_type)}'")

    if predicate.parent_id:
        conditions.append(f"'{_quote(predicate.parent_id)}' in parents")

    if predicate.query:
        conditions.append(f"name contains '{_quote(predicate.query)}'")

    trashed = predicate.trashed if predicate.trashed is not None else False
    conditions.append(f"trashed={'true' if trashed else 'false'}")

    return " and ".join(conditions)
