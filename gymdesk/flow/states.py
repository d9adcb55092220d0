"""
gymdesk/flow/states.py

Purpose: Defines the check-in/out flow vocabulary

- Scanner modes (auto toggle, check-in only, check-out only)
- Display metadata for each access outcome
- Transition rules: which session action an outcome triggers in each mode
- Single source of truth for scan log action/status pairs
"""

from enum import Enum
from typing import Dict, Tuple
from dataclasses import dataclass

from gymdesk.models.scan import AccessStatus, ScanAction, ScanStatus


class ScanMode(str, Enum):
    """
    How the front desk wants a valid scan to be treated.
    AUTO toggles: members outside are checked in, members inside checked out.
    """

    AUTO = "auto"
    CHECK_IN = "check-in"
    CHECK_OUT = "check-out"


@dataclass
class StatusMetadata:
    """
    Metadata associated with each access outcome.
    """
    status: AccessStatus
    message: str
    grants_entry: bool
    log_status: ScanStatus
    display_color: str = "gray"


STATUS_METADATA: Dict[AccessStatus, StatusMetadata] = {
    AccessStatus.INVALID: StatusMetadata(
        status=AccessStatus.INVALID,
        message="Invalid QR Code - User not found",
        grants_entry=False,
        log_status=ScanStatus.INVALID,
        display_color="red",
    ),
    AccessStatus.EXPIRED: StatusMetadata(
        status=AccessStatus.EXPIRED,
        message="Subscription Expired",
        grants_entry=False,
        log_status=ScanStatus.EXPIRED,
        display_color="orange",
    ),
    AccessStatus.ALREADY_CHECKED_IN: StatusMetadata(
        status=AccessStatus.ALREADY_CHECKED_IN,
        message="Already Checked In",
        grants_entry=True,
        log_status=ScanStatus.SUCCESS,
        display_color="blue",
    ),
    AccessStatus.GRANTED: StatusMetadata(
        status=AccessStatus.GRANTED,
        message="Access Granted",
        grants_entry=True,
        log_status=ScanStatus.SUCCESS,
        display_color="green",
    ),
}


# (outcome, mode) -> session action; pairs not listed leave sessions untouched
SESSION_TRANSITIONS: Dict[Tuple[AccessStatus, ScanMode], ScanAction] = {
    (AccessStatus.GRANTED, ScanMode.AUTO): ScanAction.CHECK_IN,
    (AccessStatus.GRANTED, ScanMode.CHECK_IN): ScanAction.CHECK_IN,
    (AccessStatus.ALREADY_CHECKED_IN, ScanMode.AUTO): ScanAction.CHECK_OUT,
    (AccessStatus.ALREADY_CHECKED_IN, ScanMode.CHECK_OUT): ScanAction.CHECK_OUT,
}


def get_status_metadata(status: AccessStatus) -> StatusMetadata:
    """
    Get metadata for an access outcome.
    """
    return STATUS_METADATA[AccessStatus(status)]


def resolve_action(status: AccessStatus, mode: ScanMode) -> ScanAction:
    """
    Session action the caller performs for an outcome in the given mode.

    Example:
        resolve_action(AccessStatus.GRANTED, ScanMode.CHECK_OUT)
        -> ScanAction.NOT_APPLICABLE (nobody to check out)
    """
    return SESSION_TRANSITIONS.get(
        (AccessStatus(status), ScanMode(mode)),
        ScanAction.NOT_APPLICABLE
    )
