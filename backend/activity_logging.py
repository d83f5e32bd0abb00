"""
Submission activity logging: one structured log line per intake/transit/sheet outcome.
Schema: action_type plus a metadata dict (form, asset_id, status, ip_address, user_agent, reason).
Field values and tokens are never logged.
"""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger("ops.activity")

# Action types
ACTION_SUBMISSION_ACCEPTED = "submission_accepted"
ACTION_SUBMISSION_REJECTED = "submission_rejected"
ACTION_SUBMISSION_RELAYED = "submission_relayed"
ACTION_RELAY_FAILED = "relay_failed"
ACTION_ENVELOPE_ACKED = "envelope_acked"
ACTION_SHEET_APPENDED = "sheet_appended"

ALLOWED_ACTION_TYPES = frozenset({
    ACTION_SUBMISSION_ACCEPTED,
    ACTION_SUBMISSION_REJECTED,
    ACTION_SUBMISSION_RELAYED,
    ACTION_RELAY_FAILED,
    ACTION_ENVELOPE_ACKED,
    ACTION_SHEET_APPENDED,
})

# Metadata keys we allow (no submission content)
ALLOWED_METADATA_KEYS = frozenset({
    "form", "asset_id", "status", "ip_address", "user_agent", "reason",
})


def _sanitize_metadata(metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Only allow safe, non-sensitive keys for storage."""
    if not metadata or not isinstance(metadata, dict):
        return {}
    return {
        k: str(v)[:500]
        for k, v in metadata.items()
        if k in ALLOWED_METADATA_KEYS and v is not None
    }


def log_submission_event(action_type: str, metadata: Optional[Dict[str, Any]] = None) -> None:
    """
    Emit one activity record. Fails silently so request flow is never broken.
    Rejections log at WARNING, everything else at INFO.
    """
    if not action_type:
        return
    if action_type not in ALLOWED_ACTION_TYPES:
        logger.warning("activity_logging: unknown action_type=%s", action_type)
        return
    try:
        level = logging.WARNING if action_type in (ACTION_SUBMISSION_REJECTED, ACTION_RELAY_FAILED) else logging.INFO
        logger.log(level, "%s %s", action_type, _sanitize_metadata(metadata))
    except Exception as e:
        logger.debug("activity_logging: failed to write log: %s", e)
