# =============================================================================
# Owner Notification
# =============================================================================

from libs.notifications import TRAINING_COMPLETE_TITLE, training_complete_body

__all__ = ["notify_owner"]


def notify_owner(mongodb, notifier, dataset_id: str, log) -> bool:
    """
    Tell the owner of a dataset that its model is ready.

    Best-effort: a missing or ambiguous dataset, a missing device token and
    delivery failures are logged and swallowed.

    Returns:
        True if a notification was delivered
    """
    try:
        datasets = mongodb.find_datasets_by_automl_id(dataset_id)
        if len(datasets) != 1:
            log.error(
                f"Expected exactly one dataset for automlId {dataset_id}, "
                f"found {len(datasets)}; owner not notified"
            )
            return False

        dataset = datasets[0]
        if not dataset.token:
            log.warning(f"Dataset {dataset.name} has no owner device token; owner not notified")
            return False

        notifier.send_to_device(
            dataset.token,
            TRAINING_COMPLETE_TITLE,
            training_complete_body(dataset.name),
        )
    except Exception as e:
        log.error(f"Error sending push notification for dataset {dataset_id}: {e}")
        return False

    log.info(f"Sent notification to owner of dataset {dataset.name}")
    return True
