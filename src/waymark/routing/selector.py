"""First-match-wins route selection with 404/405 disambiguation."""

from waymark.routing.pattern import trim_trailing_slash
from waymark.routing.route import MatchResult, Outcome
from waymark.routing.table import RouteTable


def normalize_path(path: str) -> str:
    """Prepare a request path for matching.

    Trailing slashes are trimmed (``/`` stays ``/``). A leading ``/:``
    escape is removed so ``/:users`` is matched as ``/users``.
    """
    path = trim_trailing_slash(path or "/")
    if path.startswith("/:"):
        path = "/" + path[2:]
    return path


def select(method: str, path: str, table: RouteTable) -> MatchResult:
    """Find the first table entry matching *method* and *path*.

    Entries are tried in insertion order. An entry whose pattern matches
    but whose method clauses reject *method* doesn't end the scan, since a
    later and less specific entry may still accept the method. If nothing
    accepts it, the result is ``METHOD_REJECTED`` when at least one
    pattern matched the path and ``NO_PATH_MATCH`` otherwise.
    """
    path = normalize_path(path)
    method = method.upper()

    rejected = False
    allowed: set[str] = set()
    allowed_known = True

    for entry in table:
        if not entry.pattern.test(path):
            continue
        if entry.accepts(method):
            return MatchResult(outcome=Outcome.MATCHED, entry=entry)

        rejected = True
        if entry.route_key.include:
            allowed.update(entry.route_key.include - entry.route_key.exclude)
        else:
            allowed_known = False

    if rejected:
        return MatchResult(
            outcome=Outcome.METHOD_REJECTED,
            allowed=frozenset(allowed) if allowed_known else frozenset(),
        )
    return MatchResult(outcome=Outcome.NO_PATH_MATCH)
