"""Prometheus metrics for monitoring application volume, affordability outcomes and WhatsApp delivery"""

from prometheus_client import Counter, Histogram

# Application metrics
application_counter = Counter(
    "hohema_applications_total",
    "Loan applications created",
    ["channel"],  # Web | WhatsApp
)

application_status_counter = Counter(
    "hohema_application_status_total",
    "Loan application status transitions",
    ["status"],
)

wizard_step_counter = Counter(
    "hohema_wizard_steps_total",
    "Wizard step updates",
    ["step"],
)

affordability_counter = Counter(
    "hohema_affordability_total",
    "Affordability assessments by outcome",
    ["status"],
)

# WhatsApp metrics
whatsapp_latency_histogram = Histogram(
    "whatsapp_send_latency_seconds",
    "WhatsApp Cloud API response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

whatsapp_failure_counter = Counter(
    "whatsapp_send_failures_total",
    "Failed WhatsApp message sends",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_application_created(channel: str) -> None:
    application_counter.labels(channel=channel).inc()


def record_status_change(status: str) -> None:
    application_status_counter.labels(status=status).inc()


def record_wizard_step(step_name: str) -> None:
    wizard_step_counter.labels(step=step_name).inc()


def record_affordability(status: str) -> None:
    affordability_counter.labels(status=status).inc()
