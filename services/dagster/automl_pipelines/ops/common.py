# =============================================================================
# Common Op Helpers
# =============================================================================
# Shared by every change-event driven op.
# =============================================================================

from libs.models import ChangeEvent

__all__ = ["EVENT_CONFIG_SCHEMA", "load_change_event"]

# Ops receive the change event by id; the event itself stays in MongoDB
EVENT_CONFIG_SCHEMA = {"event_id": str}


def load_change_event(mongodb, event_id: str) -> ChangeEvent:
    """
    Load the change event a run was launched for.

    Raises:
        ValueError: If the event does not exist
    """
    event = mongodb.get_change_event(event_id)
    if event is None:
        raise ValueError(f"Change event '{event_id}' not found")
    return event
