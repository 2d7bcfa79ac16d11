# souq/utils/activity_helpers.py
from sqlalchemy.ext.asyncio import AsyncSession
from souq.models.activity_models import AuditLog


async def log_user_activity(
    db: AsyncSession,
    user_id: int = None,
    action: str = "ACTIVITY",
    message: str = "",
    entity_type: str = None,
    entity_id=None,
    metadata: dict = None,
    commit: bool = False,
):
    """
    Adds an audit log entry to the session. The caller is responsible for the commit.
    """
    activity = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        message=message,
        extra=metadata,
    )
    db.add(activity)
    if commit:
        await db.commit()
