"""
Scan of the outgoing email queue (emails_sortants).

Delivery itself happens elsewhere; this only reports what is waiting.
"""

from __future__ import annotations

import logging

from backend.db import DbClient

logger = logging.getLogger(__name__)

SCAN_PENDING = "scan_pending"
SCAN_BATCH_SIZE = 10


def scan_pending_emails(db: DbClient, limit: int = SCAN_BATCH_SIZE) -> dict:
    jobs = db.list_pending_emails(limit=limit)
    logger.info("Outgoing email scan found %s pending job(s)", len(jobs))
    return {
        "ok": True,
        "mode": SCAN_PENDING,
        "pending": len(jobs),
        "jobs": [job.as_dict() for job in jobs],
    }
