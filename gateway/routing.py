from collections.abc import Iterable

from .config import RouteRule


def _is_catch_all(prefix: str) -> bool:
    return prefix.strip("/") == ""


def prefix_matches(prefix: str, path: str) -> bool:
    """Segment-aware prefix match: '/api' matches '/api' and '/api/x', not '/apiary'."""
    if _is_catch_all(prefix):
        return True
    base = prefix.rstrip("/")
    return path == base or path.startswith(base + "/")


class RouteTable:
    """
    Ordered, read-only list of route rules.

    Rules are sorted longest prefix first so the most specific rule is tried
    before the catch-all. A table without a catch-all rule is rejected, which
    means match() always returns a rule.
    """
    def __init__(self, rules: Iterable[RouteRule]):
        ordered = sorted(rules, key=lambda r: len(r.prefix.rstrip("/")), reverse=True)
        if not any(_is_catch_all(r.prefix) for r in ordered):
            raise ValueError("Route table requires a catch-all rule with prefix '/'")
        self._rules: tuple[RouteRule, ...] = tuple(ordered)

    @property
    def rules(self) -> tuple[RouteRule, ...]:
        return self._rules

    def match(self, path: str) -> RouteRule:
        for rule in self._rules:
            if prefix_matches(rule.prefix, path):
                return rule
        # unreachable: construction guarantees a catch-all
        raise LookupError(path)
