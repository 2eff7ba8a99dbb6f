from dataclasses import dataclass, field

from services.response_cache import ResponseCache

LAST_QUERY_CHARS = 120


@dataclass
class ServerState:
    """Process-wide audit state shared by every request handler."""

    cache: ResponseCache = field(default_factory=ResponseCache)
    last_query: str = ""
    last_route: str = ""

    def record_query(self, text: str) -> None:
        self.last_query = (text or "")[:LAST_QUERY_CHARS]

    def record_route(self, audit: str) -> None:
        self.last_route = audit
