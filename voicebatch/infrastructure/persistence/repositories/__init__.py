from voicebatch.infrastructure.persistence.repositories.base_repository import (
    BaseRepository,
)
from voicebatch.infrastructure.persistence.repositories.job_repository import (
    SqlAlchemyJobRepository,
)
from voicebatch.infrastructure.persistence.repositories.content_item_repository import (
    SqlAlchemyContentItemRepository,
)
from voicebatch.infrastructure.persistence.repositories.error_log_repository import (
    SqlAlchemyErrorLogRepository,
)

__all__ = [
    "BaseRepository",
    "SqlAlchemyJobRepository",
    "SqlAlchemyContentItemRepository",
    "SqlAlchemyErrorLogRepository",
]
