from prometheus_client import Counter, Histogram, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        # Try to create it
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        # If it already exists, retrieve it from the registry
        return REGISTRY._names_to_collectors[name]


REQUESTS_TOTAL = get_or_create_metric(
    "taskagent_requests_total",
    "Total requests",
    Counter,
    labelnames=["endpoint", "status"],
)

REQUEST_LATENCY_SECONDS = get_or_create_metric(
    "taskagent_request_latency_seconds",
    "Request latency",
    Histogram,
    labelnames=["endpoint"],
)

TASKS_DISPATCHED_TOTAL = get_or_create_metric(
    "taskagent_tasks_dispatched_total",
    "Tasks dispatched by kind and outcome",
    Counter,
    labelnames=["kind", "outcome"],
)

CLASSIFICATION_FALLBACK_TOTAL = get_or_create_metric(
    "taskagent_classification_fallback_total",
    "Malformed classifications recovered as GENERAL",
    Counter,
)

RECIPIENTS_TOTAL = get_or_create_metric(
    "taskagent_campaign_recipients_total",
    "Campaign recipients by delivery outcome",
    Counter,
    labelnames=["status"],
)

CAMPAIGN_BATCH_SECONDS = get_or_create_metric(
    "taskagent_campaign_batch_seconds",
    "Time to resolve one recipient chunk",
    Histogram,
)

CLASSIFICATIONS_TOTAL = get_or_create_metric(
    "taskagent_classifications_total",
    "Classified requests by resulting kind",
    Counter,
    labelnames=["kind"],
)
