# Core module
from stylist_service.core.errors import (
    StylistError,
    RemoteError,
    TransientRemoteError,
    TerminalRemoteError,
    RemoteFailure,
    ParseError,
    ValidationError,
    FetchError,
    SearchError,
)
from stylist_service.core.validation import HeuristicValidator, validate_search_request
from stylist_service.core.reconcile import build_link_index, match_inventory_item, reconcile_bundles
from stylist_service.core.pricing import parse_price, parse_budget_max, check_budget_feasibility
