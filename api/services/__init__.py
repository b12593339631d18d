"""
API Services Layer.

Async operations behind the HTTP endpoints: load from the workflow store,
apply the domain operation, save, then notify.
"""

from api.services.postings import (
    get_posting,
    list_postings,
    posting_queue,
    posting_analytics,
    create_posting,
    update_technical_assessment,
    submit_posting,
    enhance_posting,
    decide_posting,
    change_posting_visibility,
    expire_due_postings,
)

from api.services.assessments import (
    apply_for_posting,
    start_assessment_stage,
    submit_assessment_stage,
    get_session,
    list_sessions,
    get_report,
    decide_application,
)

__all__ = [
    # Postings
    "get_posting",
    "list_postings",
    "posting_queue",
    "posting_analytics",
    "create_posting",
    "update_technical_assessment",
    "submit_posting",
    "enhance_posting",
    "decide_posting",
    "change_posting_visibility",
    "expire_due_postings",
    # Assessments
    "apply_for_posting",
    "start_assessment_stage",
    "submit_assessment_stage",
    "get_session",
    "list_sessions",
    "get_report",
    "decide_application",
]
