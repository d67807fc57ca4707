"""Moderation event log: persist each transition and publish it to Redis."""

import json

from portal.logging_config import get_logger
from portal.models import ModerationEvent
from portal.moderation.repository import ModerationEventRepository
from portal.moderation.state_machine import TransitionPlan

logger = get_logger(__name__)


def channel_for(kind: str) -> str:
    return f"moderation:{kind}"


async def record_transition(
    events: ModerationEventRepository,
    redis,
    kind: str,
    submission_id: int,
    actor_id: int | None,
    plan: TransitionPlan,
) -> ModerationEvent:
    """
    Insert a moderation event and publish it on the kind's Redis channel.

    Args:
        events: Event repository bound to the request's session
        redis: Redis connection, or None when fan-out is unavailable
        kind: 'project' or 'startup'
        submission_id: Submission the transition applied to
        actor_id: User who performed it
        plan: The executed transition
    """
    entry = await events.create(
        submission_id=submission_id,
        kind=kind,
        actor_id=actor_id,
        action=plan.action.value,
        from_status=plan.from_status.value,
        to_status=plan.to_status.value if plan.to_status else None,
        note=plan.mod_notes,
    )

    if redis is not None:
        channel = channel_for(kind)
        payload = json.dumps(
            {
                "id": entry.id,
                "submission_id": submission_id,
                "action": plan.action.value,
                "from_status": plan.from_status.value,
                "to_status": plan.to_status.value if plan.to_status else None,
                "actor_id": actor_id,
            },
            default=str,
        )
        try:
            await redis.publish(channel, payload)
        except Exception as e:
            logger.warning("redis_publish_failed", channel=channel, error=str(e))

    return entry
