from .api import ApiClient, ApiError
from .search import (
    DOMAIN_FIELDS,
    DomainPage,
    ParsedQuery,
    SearchEngine,
    TTLCache,
    parse_search_input,
    tokenize,
)
from .sync import (
    Debouncer,
    LatestOnly,
    RowTable,
    SearchBox,
    SnapshotDiff,
    TableSync,
    TableView,
    diff_snapshots,
)

__all__ = [
    "ApiClient",
    "ApiError",
    "DOMAIN_FIELDS",
    "Debouncer",
    "DomainPage",
    "LatestOnly",
    "ParsedQuery",
    "RowTable",
    "SearchBox",
    "SearchEngine",
    "SnapshotDiff",
    "TTLCache",
    "TableSync",
    "TableView",
    "diff_snapshots",
    "parse_search_input",
    "tokenize",
]
