"""
Process exit code for a finished broadcast.

    0  every channel delivered
    1  partial delivery, or every failure was a message validation problem
    2  nothing delivered for operational reasons
    5  aggregate status not recognised
"""

import re

from broadcaster.output.base import BroadcastResult, DeliveryStatus, OverallStatus

VALIDATION_ERROR_RE = re.compile(r"invalid_arguments|validation", re.IGNORECASE)


def is_validation_error(error_type: str | None) -> bool:
    return bool(error_type) and VALIDATION_ERROR_RE.search(error_type) is not None


def resolve_exit_code(result: BroadcastResult) -> int:
    status = result.overall_status
    if status == OverallStatus.SUCCESS:
        return 0
    if status not in (OverallStatus.PARTIAL, OverallStatus.FAILED):
        return 5

    failed = [r for r in result.delivery_results if r.status is DeliveryStatus.FAILED]
    if failed and all(r.error and is_validation_error(r.error.type) for r in failed):
        return 1
    return 1 if status == OverallStatus.PARTIAL else 2
