"""
Submission handling: validate a maintenance submission and persist it.

Thin layer between the HTTP endpoints and the rule engine / store.  The
history read, the evaluation and the write happen while the submission's
equipment lock is held, so two concurrent submissions for the same
equipment and day cannot both pass the duplicate check.
"""
import logging
from datetime import datetime
from typing import NamedTuple, Optional

import config
from db import equipment_lock, fetch_maintenance, save_maintenance
from models import MaintenanceRecord, MaintenanceSubmission, ValidationVerdict, utcnow
from rule_engine import RuleSettings, evaluate

logger = logging.getLogger(__name__)


class SubmissionResult(NamedTuple):
    verdict: ValidationVerdict
    record: Optional[MaintenanceRecord]


def submit_maintenance(
    submission: MaintenanceSubmission,
    db_path: str = config.DB_PATH,
    now: Optional[datetime] = None,
    settings: Optional[RuleSettings] = None,
) -> SubmissionResult:
    """Validate ``submission`` against stored history and save it when valid.

    ``record`` in the result is None when the verdict carries errors.
    """
    with equipment_lock(submission.equipment_id):
        history = fetch_maintenance(db_path, equipment_id=submission.equipment_id)
        verdict = evaluate(submission, history, now=now, settings=settings)
        if not verdict.is_valid:
            logger.info(
                "Rejected maintenance for equipment %s with %d error(s)",
                submission.equipment_id, len(verdict.errors),
            )
            return SubmissionResult(verdict, None)
        record = save_maintenance(MaintenanceRecord.from_submission(submission, created_at=now or utcnow()), db_path)

    if verdict.warnings:
        logger.warning("Advertencias: %s", ", ".join(verdict.warnings))
    logger.info("Stored maintenance %s for equipment %s", record.id, record.equipment_id)
    return SubmissionResult(verdict, record)
