# =============================================================================
# Operation Poller
# =============================================================================
# Refreshes pending operation records of one kind from the provider. This is
# the only writer of the done flag; a done flip enters the change feed and
# drives the stage coordinator.
# =============================================================================

from dataclasses import dataclass, field

from libs.errors import NotFoundError, ProviderError
from libs.models import OperationType

__all__ = ["PollSummary", "poll_operations"]


@dataclass
class PollSummary:
    """Outcome of one poll tick."""

    kind: OperationType
    examined: int = 0
    completed: list[str] = field(default_factory=list)
    recovered: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "type": self.kind.value,
            "examined": self.examined,
            "completed": list(self.completed),
            "recovered": list(self.recovered),
            "errors": dict(self.errors),
        }


def poll_operations(mongodb, gateway, kind: OperationType, log) -> PollSummary:
    """
    Poll the provider for every not-done operation of one kind.

    Each record is handled on its own: a failure is logged and recorded in
    the summary, and the remaining records are still polled. Nothing is
    raised to the caller for per-record failures.

    Args:
        mongodb: MongoDBResource ledger
        gateway: AutoMLGateway
        kind: Operation type to poll
        log: Logger (context.log in Dagster)

    Returns:
        PollSummary with the examined count, completed handles and errors
    """
    kind = OperationType(kind)
    summary = PollSummary(kind=kind)

    # Completions flipped on an earlier tick whose change event never landed
    try:
        summary.recovered = mongodb.announce_pending_completions(kind)
    except Exception as e:
        log.error(f"Failed to announce pending {kind.value} completions: {e}")
    for name in summary.recovered:
        log.warning(f"Re-announced completion of {name}")

    pending = mongodb.find_pending_operations(kind)
    if not pending:
        log.info(f"No pending operations found for type {kind.value}")
        return summary

    for record in pending:
        summary.examined += 1
        try:
            status = gateway.status(record.name)
            written = mongodb.update_operation_status(record.name, status)
        except NotFoundError as e:
            log.error(f"Operation {record.name} is unknown to the provider: {e}")
            summary.errors[record.name] = f"not found: {e}"
            continue
        except ProviderError as e:
            log.warning(f"Provider error while polling {record.name}: {e}")
            summary.errors[record.name] = str(e)
            continue
        except Exception as e:
            log.error(f"Unexpected error while polling {record.name}: {e}")
            summary.errors[record.name] = str(e)
            continue

        if written is None:
            log.warning(f"Operation {record.name} disappeared before its status was written")
            continue

        before, after = written
        if not before.get("done") and after.get("done"):
            summary.completed.append(record.name)
            log.info(f"Operation {record.name} ({kind.value}) completed for dataset {record.dataset_id}")
        else:
            log.debug(f"Operation {record.name} still running")

    log.info(
        f"{summary.examined} operations updated: {kind.value} "
        f"({len(summary.completed)} completed, {len(summary.errors)} errors)"
    )
    return summary
