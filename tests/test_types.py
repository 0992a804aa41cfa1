import pytest

from opsctl.ec2.types import OutcomeKind, RetryPolicy, RunOutcome, looks_like_instance_id


class TestRetryPolicy:
    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_attempts == 10
        assert policy.base_delay_seconds == 30

    def test_delay_doubles_per_attempt(self):
        policy = RetryPolicy(max_attempts=5, base_delay_seconds=30)
        assert [policy.delay_for(k) for k in range(1, 5)] == [30, 60, 120, 240]

    def test_zero_base_delay_is_allowed(self):
        assert RetryPolicy(max_attempts=3, base_delay_seconds=0).delay_for(3) == 0

    @pytest.mark.parametrize("max_attempts,base_delay", [(0, 30), (-1, 30), (3, -5)])
    def test_invalid_values_rejected(self, max_attempts, base_delay):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=max_attempts, base_delay_seconds=base_delay)

    def test_attempt_index_is_one_based(self):
        with pytest.raises(ValueError):
            RetryPolicy().delay_for(0)

    def test_is_immutable(self):
        policy = RetryPolicy()
        with pytest.raises(AttributeError):
            policy.max_attempts = 3


class TestRunOutcome:
    @pytest.mark.parametrize("kind,exit_code", [
        (OutcomeKind.ALREADY_RUNNING, 0),
        (OutcomeKind.STARTED, 0),
        (OutcomeKind.FAILED_CAPACITY, 1),
        (OutcomeKind.FAILED_OTHER, 1),
        (OutcomeKind.FAILED_NOT_FOUND, 1),
    ])
    def test_exit_codes(self, kind, exit_code):
        assert RunOutcome(kind, "i-1234567890abcdef0", 1.0).exit_code == exit_code

    def test_other_error_message_embeds_detail(self):
        outcome = RunOutcome(OutcomeKind.FAILED_OTHER, "i-1234567890abcdef0", 7.9, attempts=1, error="denied")
        assert outcome.message() == "❌ Instance i-1234567890abcdef0 failed to start (7s). Error: denied"

    def test_capacity_message_embeds_attempts(self):
        outcome = RunOutcome(OutcomeKind.FAILED_CAPACITY, "i-1234567890abcdef0", 930.0, attempts=5)
        assert "after 5 attempts (930s)" in outcome.message()


@pytest.mark.parametrize("ref,expected", [
    ("i-1234abcd", True),
    ("i-0123456789abcdef0", True),
    ("i-XYZ", False),
    ("my-instance", False),
])
def test_looks_like_instance_id(ref, expected):
    assert looks_like_instance_id(ref) is expected
