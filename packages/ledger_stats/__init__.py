"""Public interface for the ``ledger_stats`` package.

This module exposes the ingestion, filtering and aggregation functions and
the public models/types as the stable import surface. There is no runtime
logic here, only symbol re-exports.
"""

from .aggregations import (
    group_by_category,
    group_by_source,
    payment_summary,
    top_categories,
    top_category,
    top_sources,
)
from .config import AppSettings, IngestSettings, LedgerColumns, load_settings
from .errors import (
    AmountNormalizationError,
    IngestionError,
    LedgerStatsError,
    PreferenceStoreError,
    RemoteServiceError,
)
from .filters import (
    apply_filter,
    distinct_categories,
    distinct_sources,
    exclude_transactions,
    filter_by_category,
    select_files,
)
from .ingest import ingest_content, load_transactions_from_path, parse_ledger_csv
from .models import (
    CategoryTotal,
    GroupTotal,
    LedgerFileInfo,
    PaymentSummary,
    SourceTotal,
    Transaction,
    TransactionFilter,
    Transactions,
    UserPreferences,
)
from .normalizers import format_amount, normalize_amount
from .status import classify_cash, classify_paid

__all__ = [
    # Ingestion
    "ingest_content",
    "load_transactions_from_path",
    "parse_ledger_csv",
    "normalize_amount",
    "format_amount",
    "classify_paid",
    "classify_cash",
    # Filters / aggregation
    "exclude_transactions",
    "select_files",
    "filter_by_category",
    "apply_filter",
    "distinct_categories",
    "distinct_sources",
    "payment_summary",
    "group_by_category",
    "group_by_source",
    "top_categories",
    "top_sources",
    "top_category",
    # Configuration
    "AppSettings",
    "IngestSettings",
    "LedgerColumns",
    "load_settings",
    # Errors
    "LedgerStatsError",
    "IngestionError",
    "AmountNormalizationError",
    "RemoteServiceError",
    "PreferenceStoreError",
    # Models / types
    "Transaction",
    "Transactions",
    "GroupTotal",
    "CategoryTotal",
    "SourceTotal",
    "PaymentSummary",
    "LedgerFileInfo",
    "TransactionFilter",
    "UserPreferences",
]
