"""Change event sensor.

Routes unprocessed entries of the `change_events` feed to the job that
handles them:

- operations update   -> advance_stage_job
- datasets delete     -> delete_dataset_job
- labels delete       -> delete_label_job
- images delete       -> delete_image_job
- collaborators delete -> remove_collaborator_job

The run key is derived from the event id, so a re-delivered event never
launches a second run.
"""

from typing import NamedTuple, Optional

from dagster import (
    DefaultSensorStatus,
    RunRequest,
    SensorEvaluationContext,
    SkipReason,
    sensor,
)

from libs.models import ChangeEvent, ChangeType

from ..jobs import (
    advance_stage_job,
    delete_dataset_job,
    delete_image_job,
    delete_label_job,
    remove_collaborator_job,
)
from ..resources import MongoDBResource

__all__ = ["EVENT_ROUTES", "route_for", "build_run_request", "change_event_sensor"]

MAX_EVENTS_PER_TICK = 100


class Route(NamedTuple):
    job_name: str
    op_name: str


EVENT_ROUTES: dict[tuple[str, ChangeType], Route] = {
    ("operations", ChangeType.UPDATE): Route("advance_stage_job", "advance_stage"),
    ("datasets", ChangeType.DELETE): Route("delete_dataset_job", "delete_dataset_cascade"),
    ("labels", ChangeType.DELETE): Route("delete_label_job", "delete_label_cascade"),
    ("images", ChangeType.DELETE): Route("delete_image_job", "release_image"),
    ("collaborators", ChangeType.DELETE): Route("remove_collaborator_job", "remove_collaborator_email"),
}


def route_for(event: ChangeEvent) -> Optional[Route]:
    return EVENT_ROUTES.get((event.collection, ChangeType(event.event_type)))


def build_run_request(event: ChangeEvent, route: Route) -> RunRequest:
    """
    Build the RunRequest for a routed change event.

    Args:
        event: Change event with its event_id set
        route: Job and op handling the event

    Returns:
        RunRequest keyed by the event id, passing the id as op config
    """
    event_type = ChangeType(event.event_type).value
    return RunRequest(
        run_key=f"{event.collection}:{event_type}:{event.event_id}",
        job_name=route.job_name,
        run_config={"ops": {route.op_name: {"config": {"event_id": event.event_id}}}},
        tags={
            "change_event_id": event.event_id,
            "collection": event.collection,
            "document_key": event.document_key,
            "event_type": event_type,
        },
    )


@sensor(
    name="change_event_sensor",
    minimum_interval_seconds=30,
    default_status=DefaultSensorStatus.RUNNING,
    jobs=[
        advance_stage_job,
        delete_dataset_job,
        delete_label_job,
        delete_image_job,
        remove_collaborator_job,
    ],
    description="Routes record change events (operation completions, deletions) to lifecycle jobs",
)
def change_event_sensor(context: SensorEvaluationContext, mongodb: MongoDBResource):
    """
    Poll the change feed and launch one run per routable event.

    Flow:
    1. Fetch the oldest unprocessed change events
    2. For each event with a route: yield a RunRequest
    3. Mark every fetched event processed (unroutable ones included)

    Yields:
        RunRequest: For each routable event
        SkipReason: If the feed is empty or cannot be read
    """
    try:
        events = mongodb.fetch_unprocessed_change_events(limit=MAX_EVENTS_PER_TICK)
    except Exception as e:
        context.log.error(f"Failed to read change events: {e}")
        yield SkipReason(f"Error reading change events: {e}")
        return

    if not events:
        yield SkipReason("No new change events")
        return

    launched = 0
    for event in events:
        route = route_for(event)
        if route is None:
            context.log.debug(
                f"No route for {event.event_type} on {event.collection}; skipping event {event.event_id}"
            )
        else:
            run_request = build_run_request(event, route)
            yield run_request
            launched += 1
            context.log.info(
                f"Triggered {route.job_name} for {event.collection}/{event.document_key} "
                f"(run_key: {run_request.run_key})"
            )

        try:
            mongodb.mark_change_event_processed(event.event_id)
        except Exception as e:
            context.log.warning(f"Failed to mark change event {event.event_id} processed: {e}")

    if launched == 0:
        yield SkipReason(f"{len(events)} change events had no route")
