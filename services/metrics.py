from prometheus_client import Counter

# Exposed on /metrics next to the instrumentator's HTTP metrics.
CHAT_REQUESTS = Counter(
    "campus_chat_requests_total",
    "Chat requests received by the gateway.",
)
ROUTES = Counter(
    "campus_routes_total",
    "Chat requests by selected provider and tier.",
    ["provider", "tier"],
)
CACHE_LOOKUPS = Counter(
    "campus_cache_lookups_total",
    "Response cache lookups by result.",
    ["result"],
)
FALLBACKS = Counter(
    "campus_fallback_responses_total",
    "Chat responses replaced or completed by the fallback streamer.",
)
