"""
gymdesk/flow/dispatcher.py

Purpose: Central scan dispatcher

- Receives a scanned member ID from the scanner or the API
- Runs access validation
- Performs the check-in/check-out transition the outcome calls for
- Writes the scan log entry
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from gymdesk.core.logging import get_logger, LogContext
from gymdesk.flow.states import ScanMode, get_status_metadata, resolve_action
from gymdesk.models.scan import (
    AccessStatus,
    AccessValidation,
    ActiveSession,
    ScanAction,
    ScanLog,
)
from gymdesk.services import access_service, scan_log_service, session_service
from gymdesk.utils.time_utils import local_now
from gymdesk.utils.validation_utils import sanitize_scanned_code

logger = get_logger(__name__)


class ScanOutcome(BaseModel):
    """What happened for one scan."""

    code: str
    mode: ScanMode
    validation: AccessValidation
    action: ScanAction
    session: Optional[ActiveSession] = None
    logged: bool = False

    model_config = ConfigDict(use_enum_values=True)

    @property
    def message(self) -> str:
        if self.action == ScanAction.CHECK_IN:
            return "Checked In"
        if self.action == ScanAction.CHECK_OUT:
            return "Checked Out"
        return self.validation.message


async def process_scan(code: str, mode: ScanMode = ScanMode.AUTO) -> ScanOutcome:
    """
    Main dispatcher for a scanned code.

    Args:
        code: Raw scanned member ID
        mode: AUTO toggles in/out; CHECK_IN / CHECK_OUT only do that one thing

    Returns:
        ScanOutcome with the validation result, the action performed and
        the session that was opened or closed
    """
    user_id = sanitize_scanned_code(code)
    mode = ScanMode(mode)

    with LogContext(user_id=user_id, mode=mode.value):
        validation = await access_service.validate_access(user_id)
        status = AccessStatus(validation.status)
        action = resolve_action(status, mode)
        session: Optional[ActiveSession] = None

        user_name = validation.user.name if validation.user else "Unknown"

        if action == ScanAction.CHECK_IN:
            session = ActiveSession(user_id=user_id, user_name=user_name, check_in_time=local_now())
            if not await session_service.start_session(session):
                # Another scanner opened the session first
                action = ScanAction.NOT_APPLICABLE
                session = None

        elif action == ScanAction.CHECK_OUT:
            session = await session_service.end_session(user_id)
            if session is None:
                action = ScanAction.NOT_APPLICABLE

        logged = await scan_log_service.add_scan_log(
            ScanLog(
                user_id=user_id,
                user_name=user_name,
                timestamp=local_now(),
                action=action,
                status=get_status_metadata(status).log_status,
            )
        )

        logger.info(
            f"Scan processed: {status.value} -> {action.value}",
            extra={"scan_status": status.value}
        )

        return ScanOutcome(
            code=user_id,
            mode=mode,
            validation=validation,
            action=action,
            session=session,
            logged=logged,
        )
