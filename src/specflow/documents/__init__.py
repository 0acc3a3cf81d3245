from specflow.documents.artifacts import ArtifactValidator, DesignReview
from specflow.documents.todo import (
    GLYPH_STATUS,
    STATUS_GLYPH,
    TaskRow,
    parse_task_table,
    rewrite_status_glyph,
)

__all__ = [
    "GLYPH_STATUS",
    "STATUS_GLYPH",
    "ArtifactValidator",
    "DesignReview",
    "TaskRow",
    "parse_task_table",
    "rewrite_status_glyph",
]
