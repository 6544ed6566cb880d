# Observability module
from stylist_service.observability.logger import log_request, is_logging_enabled
from stylist_service.observability.metrics import (
    increment_request,
    record_category,
    record_remote_call,
    get_metrics,
    reset_metrics,
)
