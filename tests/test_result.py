from agent_relay.services.result import ALREADY_EXISTS, Result


class TestResultSuccess:
    def test_success_creates_ok_result(self):
        result = Result.success("test value")
        assert result.ok is True
        assert result.value == "test value"
        assert result.error is None

    def test_success_with_different_types(self):
        int_result = Result.success(42)
        assert int_result.value == 42

        dict_result = Result.success({"key": "value"})
        assert dict_result.value == {"key": "value"}


class TestResultFailure:
    def test_failure_creates_not_ok_result(self):
        result = Result.failure("Something went wrong", "test_error")
        assert result.ok is False
        assert result.error == "Something went wrong"
        assert result.error_code == "test_error"
        assert result.value is None

    def test_failure_default_code(self):
        result = Result.failure("Error message")
        assert result.error_code == "unknown"


class TestFailedWith:
    def test_conflict_is_distinguishable(self):
        result = Result.failure("Conversation already recorded", ALREADY_EXISTS)
        assert result.failed_with(ALREADY_EXISTS) is True
        assert result.failed_with("db_error") is False

    def test_success_never_matches(self):
        assert Result.success(None).failed_with(ALREADY_EXISTS) is False
