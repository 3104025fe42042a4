"""
Prometheus metrics for iterforge.

Provides pre-defined metrics for monitoring:
- HTTP request metrics
- Iteration loop metrics
- Model provider metrics
- Preview server metrics
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# =============================================================================
# Application Info
# =============================================================================

app_info = Info(
    "iterforge",
    "iterforge application information",
)

# =============================================================================
# HTTP Request Metrics
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests currently in progress",
    ["method", "endpoint"],
)

# =============================================================================
# Iteration Loop Metrics
# =============================================================================

agent_runs_total = Counter(
    "agent_runs_total",
    "Total iteration loop runs",
    ["status"],
)

agent_iterations_total = Counter(
    "agent_iterations_total",
    "Total loop iterations across all runs",
)

directives_total = Counter(
    "directives_total",
    "Directives dispatched",
    ["type", "status"],
)

# =============================================================================
# Model Provider Metrics
# =============================================================================

llm_requests_total = Counter(
    "llm_requests_total",
    "Completion requests sent to the model provider",
    ["provider", "status"],
)

llm_request_duration_seconds = Histogram(
    "llm_request_duration_seconds",
    "Completion request duration in seconds",
    ["provider"],
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
)

# =============================================================================
# Preview Server Metrics
# =============================================================================

preview_servers_running = Gauge(
    "preview_servers_running",
    "Preview server processes currently registered",
)

preview_server_starts_total = Counter(
    "preview_server_starts_total",
    "Preview server start attempts",
    ["status"],
)
