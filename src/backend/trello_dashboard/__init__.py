"""
Trello board dashboard backend.

This package mirrors a Trello board (lists, cards, members, labels and
checklists) into the aggregates shown by the operations dashboard: board-wide
summary metrics, normalized card detail and per-member workload.
"""

from .buckets import (  # noqa: F401
    ALLOWED_LISTS,
    BUCKET_ORDER,
    BUCKETS,
    Bucket,
    LIST_NAMES,
    STATUS_SORT_ORDER,
    get_bucket_for_status,
)
from .cache import TaggedTTLCache  # noqa: F401
from .configuration import DashboardSettings  # noqa: F401
from .exceptions import (  # noqa: F401
    BoardServiceError,
    ConfigurationError,
    DashboardAssemblyError,
    DashboardError,
    TrelloAuthError,
    TrelloRequestError,
)
from .models import (  # noqa: F401
    BoardSummary,
    BucketSection,
    DashboardCard,
    DashboardData,
    DashboardFilters,
    DashboardView,
    TeamMemberWorkload,
    TrelloCard,
    TrelloLabel,
    TrelloList,
    TrelloMember,
)
from .repository import (  # noqa: F401
    BoardRepository,
    InMemoryBoardRepository,
    TrelloBoardRepository,
    build_repository,
)
from .service import TrelloDashboardService, build_summary, build_workloads  # noqa: F401
from .transform import transform_card  # noqa: F401
from .workload_view import (  # noqa: F401
    build_dashboard_view,
    build_filtered_workloads,
    card_matches_filters,
    group_by_bucket,
)
