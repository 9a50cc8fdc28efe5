"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"hackmatch_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"hackmatch_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"hackmatch_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"hackmatch_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

SWIPES = Counter(
	"hackmatch_swipes_total",
	"Swipe decisions processed",
	["direction", "result"],
)

MATCHES_CREATED = Counter(
	"hackmatch_matches_created_total",
	"Mutual matches committed",
)

MATCHES_RETRACTED = Counter(
	"hackmatch_matches_retracted_total",
	"Mutual matches removed by undo",
)

MATCH_EVENT_FAILURES = Counter(
	"hackmatch_match_event_failures_total",
	"Match notifications that failed to emit",
	["event"],
)

BLOCKS = Counter(
	"hackmatch_blocks_total",
	"Block requests by outcome",
	["result"],
)

UNDOS = Counter(
	"hackmatch_undo_total",
	"Undo requests by outcome",
	["result"],
)

QUEUE_REFILLS = Counter(
	"hackmatch_queue_refills_total",
	"Candidate queue refills by outcome",
	["result"],
)

QUEUE_SERVES = Counter(
	"hackmatch_queue_serves_total",
	"Candidates served by the queue manager",
	["kind"],
)

RANKING_DURATION = Histogram(
	"hackmatch_ranking_duration_seconds",
	"Time spent ranking an eligible candidate pool",
	buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

RANKING_POOL_SIZE = Histogram(
	"hackmatch_ranking_pool_size",
	"Eligible candidates per ranking pass",
	buckets=(0, 1, 5, 10, 25, 50, 100, 250, 500, 1000),
)

DEPENDENCY_ERRORS = Counter(
	"hackmatch_dependency_errors_total",
	"Storage or profile store failures surfaced as DependencyUnavailable",
	["dependency"],
)


def observe_request(route: str, method: str, status: int, duration_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(duration_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def inc_swipe(direction: str, result: str) -> None:
	SWIPES.labels(direction=direction, result=result).inc()


def inc_match_created() -> None:
	MATCHES_CREATED.inc()


def inc_match_retracted() -> None:
	MATCHES_RETRACTED.inc()


def inc_match_event_failure(event: str) -> None:
	MATCH_EVENT_FAILURES.labels(event=event).inc()


def inc_undo(result: str) -> None:
	UNDOS.labels(result=result).inc()


def inc_block(result: str) -> None:
	BLOCKS.labels(result=result).inc()


def inc_queue_refill(result: str) -> None:
	QUEUE_REFILLS.labels(result=result).inc()


def inc_queue_serve(kind: str) -> None:
	QUEUE_SERVES.labels(kind=kind).inc()


def observe_ranking(duration_seconds: float, pool_size: int) -> None:
	RANKING_DURATION.observe(duration_seconds)
	RANKING_POOL_SIZE.observe(pool_size)


def inc_dependency_error(dependency: str) -> None:
	DEPENDENCY_ERRORS.labels(dependency=dependency).inc()
