from datetime import datetime, timezone

import pytest

from broadcaster.output.base import BroadcastResult, ChannelDeliveryResult, DeliveryError, DeliveryStatus
from broadcaster.output.exit_codes import is_validation_error, resolve_exit_code
from tests.conftest import make_channel

NOW = datetime.now(timezone.utc)


def _ok(i: int) -> ChannelDeliveryResult:
    return ChannelDeliveryResult(
        make_channel(f"C00000000{i:02d}", f"ch{i}"),
        DeliveryStatus.SUCCESS,
        message_id=f"1700000000.{i:06d}",
        delivered_at=NOW,
    )


def _failed(i: int, error_type: str) -> ChannelDeliveryResult:
    return ChannelDeliveryResult(
        make_channel(f"C00000000{i:02d}", f"ch{i}"),
        DeliveryStatus.FAILED,
        error=DeliveryError(type=error_type, message=error_type),
    )


def _skipped(i: int) -> ChannelDeliveryResult:
    return ChannelDeliveryResult(
        make_channel(f"C00000000{i:02d}", f"ch{i}", is_private=True),
        DeliveryStatus.SKIPPED,
        error=DeliveryError(type="not_in_channel", message="not a member"),
    )


def _result(*deliveries) -> BroadcastResult:
    return BroadcastResult("list", list(deliveries), completed_at=NOW)


class TestResolveExitCode:
    def test_success(self):
        assert resolve_exit_code(_result(_ok(1), _ok(2))) == 0

    def test_all_validation_failures(self):
        assert resolve_exit_code(_result(_failed(1, "invalid_arguments"), _failed(2, "invalid_arguments"))) == 1

    def test_validation_plus_network_failure(self):
        assert resolve_exit_code(_result(_failed(1, "invalid_arguments"), _failed(2, "network_error"))) == 2

    def test_operational_failure(self):
        assert resolve_exit_code(_result(_failed(1, "is_archived"))) == 2

    def test_partial(self):
        assert resolve_exit_code(_result(_ok(1), _failed(2, "network_error"))) == 1

    def test_partial_with_only_skips(self):
        assert resolve_exit_code(_result(_ok(1), _skipped(2))) == 1

    def test_only_skips_is_operational(self):
        assert resolve_exit_code(_result(_skipped(1))) == 2

    def test_validation_type_by_substring(self):
        assert resolve_exit_code(_result(_failed(1, "message_ValidationError"))) == 1

    def test_unknown_status(self):
        result = _result(_ok(1))
        result.overall_status = "exploded"
        assert resolve_exit_code(result) == 5


@pytest.mark.parametrize("error_type, expected", [
    ("invalid_arguments", True),
    ("INVALID_ARGUMENTS", True),
    ("schema_validation_failed", True),
    ("network_error", False),
    ("", False),
    (None, False),
])
def test_is_validation_error(error_type, expected):
    assert is_validation_error(error_type) is expected
