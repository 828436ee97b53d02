"""Projection of a parsed entity into the card shown for confirmation."""

from planchat.services.intent import ConfirmationCard, EntityKind, ParsedEntity


def classify(entity: ParsedEntity) -> EntityKind:
    """Card kind from what the entity actually carries.

    A dated meeting without a clock time stays a task.
    """
    if entity.has_schedule and entity.has_tasks:
        return EntityKind.BOTH
    if entity.has_schedule:
        return EntityKind.SCHEDULE
    if entity.has_tasks or entity.kind == EntityKind.TASK:
        return EntityKind.TASK
    return EntityKind.OTHER


def project_to_card(entity: ParsedEntity) -> ConfirmationCard:
    title = entity.title
    if not title and entity.tasks:
        title = entity.tasks[0].title

    return ConfirmationCard(
        kind=classify(entity),
        title=title or "",
        start_time=entity.start_time,
        due_date=entity.due_date,
        estimated_duration_minutes=entity.estimated_duration_minutes,
        tasks=list(entity.tasks),
    )
