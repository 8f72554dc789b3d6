"""Tests for bounded call-status polling."""

from support_bot.config import TelephonyConfig
from support_bot.conversation.call_monitor import CallStatusPoller, PollOutcome
from support_bot.schemas.call_schema import CallStatus
from support_bot.tools.errors import TelephonyError
from tests.conftest import FakeClock, FakeTelephony


def make_poller(statuses, config=None):
    clock = FakeClock()
    telephony = FakeTelephony(statuses)
    poller = CallStatusPoller(telephony, config or TelephonyConfig(), clock=clock, sleep=clock.sleep)
    return poller, telephony, clock


class TestCallStatusParsing:
    def test_known_status(self):
        assert CallStatus.parse("no-answer") == CallStatus.NO_ANSWER

    def test_case_and_whitespace(self):
        assert CallStatus.parse(" Completed ") == CallStatus.COMPLETED

    def test_unknown_status(self):
        assert CallStatus.parse("exploded") == CallStatus.UNKNOWN
        assert CallStatus.parse(None) == CallStatus.UNKNOWN


class TestPolling:
    def test_terminal_status_ends_polling(self):
        poller, telephony, clock = make_poller([CallStatus.RINGING, CallStatus.IN_PROGRESS, CallStatus.COMPLETED])
        result = poller.wait("CA1")
        assert result.outcome == PollOutcome.TERMINAL
        assert result.session.status == CallStatus.COMPLETED
        assert result.checks == 3
        assert result.elapsed_sec == 15

    def test_polls_at_fixed_interval(self):
        poller, _, clock = make_poller([CallStatus.RINGING, CallStatus.BUSY])
        poller.wait("CA1")
        assert clock.sleeps == [5, 5]

    def test_soft_cap_stops_after_thirty_seconds(self):
        poller, telephony, _ = make_poller([CallStatus.IN_PROGRESS])
        result = poller.wait("CA1")
        assert result.outcome == PollOutcome.SOFT_TIMEOUT
        assert result.elapsed_sec == 30
        assert telephony.status_checks == 6

    def test_terminal_wins_at_soft_cap_boundary(self):
        statuses = [CallStatus.IN_PROGRESS] * 5 + [CallStatus.FAILED]
        poller, _, _ = make_poller(statuses)
        assert poller.wait("CA1").outcome == PollOutcome.TERMINAL

    def test_hard_cap_without_soft_cap(self):
        poller, telephony, _ = make_poller([CallStatus.IN_PROGRESS])
        result = poller.wait("CA1", soft_cap=False)
        assert result.outcome == PollOutcome.HARD_TIMEOUT
        assert result.elapsed_sec == 300
        assert telephony.status_checks == 60

    def test_status_errors_do_not_stop_polling(self):
        statuses = [TelephonyError("flaky"), TelephonyError("flaky"), CallStatus.CANCELED]
        poller, _, _ = make_poller(statuses)
        result = poller.wait("CA1")
        assert result.outcome == PollOutcome.TERMINAL
        assert result.checks == 3

    def test_unreachable_status_endpoint_hits_soft_cap(self):
        poller, _, _ = make_poller([TelephonyError("down")])
        result = poller.wait("CA1")
        assert result.outcome == PollOutcome.SOFT_TIMEOUT
        assert result.session.status == CallStatus.INITIATED

    def test_session_timestamps_recorded(self):
        poller, _, _ = make_poller([CallStatus.COMPLETED])
        session = poller.wait("CA9").session
        assert session.call_sid == "CA9"
        assert session.end_time is not None
        assert session.end_time >= session.start_time
