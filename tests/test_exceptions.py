"""Tests for exceptions.py - error hierarchy, formatting and retry helpers."""

from orm_discovery.shared.exceptions import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    ContentNotFoundError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    InvalidParameterError,
    InvalidQueryError,
    LoginTimeoutError,
    ORMDiscoveryError,
    ParseError,
    PersistenceError,
    SessionExpiredError,
    TransientNetworkError,
    ValidationError,
    get_retry_delay,
    is_retryable_error,
)


class TestORMDiscoveryError:
    def test_basic_creation(self):
        e = ORMDiscoveryError("test error")
        assert str(e) == "test error"
        assert e.severity == ErrorSeverity.ERROR
        assert e.category == ErrorCategory.API
        assert e.retryable is False

    def test_to_dict(self):
        ctx = ErrorContext(tool_name="t", suggestion="s", example="e", retry_after=5.0)
        e = ORMDiscoveryError("fail", context=ctx, retryable=True)
        d = e.to_dict()
        assert d["error"] == "fail"
        assert d["error_type"] == "ORMDiscoveryError"
        assert d["tool"] == "t"
        assert d["suggestion"] == "s"
        assert d["example"] == "e"
        assert d["retry_after_seconds"] == 5.0
        assert d["retryable"] is True

    def test_to_dict_minimal(self):
        d = ORMDiscoveryError("fail").to_dict()
        assert "tool" not in d
        assert "suggestion" not in d

    def test_to_agent_message(self):
        ctx = ErrorContext(suggestion="fix it", example="do_it()")
        msg = ORMDiscoveryError("fail", context=ctx, retryable=True).to_agent_message()
        assert "**Error**: fail" in msg
        assert "fix it" in msg
        assert "`do_it()`" in msg
        assert "retryable" in msg


class TestAuthenticationErrors:
    def test_authentication_error_is_critical(self):
        e = AuthenticationError("bad password", url="https://idp.acm.org/")
        assert e.severity == ErrorSeverity.CRITICAL
        assert e.category == ErrorCategory.AUTH
        assert e.retryable is False
        assert e.url == "https://idp.acm.org/"

    def test_session_expired_carries_status(self):
        e = SessionExpiredError(status_code=403, url="https://learning.oreilly.com/api/v2/search/")
        assert isinstance(e, AuthenticationError)
        assert e.status_code == 403
        assert "HTTP 403" in str(e)

    def test_login_timeout_message(self):
        e = LoginTimeoutError(60)
        assert isinstance(e, AuthenticationError)
        assert "60s" in str(e)
        assert e.timeout == 60


class TestNetworkAndDataErrors:
    def test_transient_is_retryable(self):
        e = TransientNetworkError("server error", status_code=503, retry_after=2.0)
        assert e.retryable is True
        assert e.severity == ErrorSeverity.TRANSIENT
        assert e.context.retry_after == 2.0
        assert e.status_code == 503

    def test_api_error_not_retryable(self):
        e = APIError("bad request", status_code=400)
        assert e.retryable is False
        assert e.status_code == 400

    def test_content_not_found(self):
        e = ContentNotFoundError("Book", "978-0")
        assert str(e) == "Book not found: 978-0"
        assert e.resource == "Book"
        assert e.identifier == "978-0"
        assert e.category == ErrorCategory.DATA

    def test_parse_error_category(self):
        assert ParseError().category == ErrorCategory.DATA


class TestValidationErrors:
    def test_invalid_query(self):
        e = InvalidQueryError("   ")
        assert isinstance(e, ValidationError)
        assert e.category == ErrorCategory.VALIDATION
        assert e.context.example

    def test_invalid_parameter(self):
        e = InvalidParameterError("rows", 0, "must be positive", example="rows=10")
        assert str(e) == "Invalid rows: must be positive"
        assert e.parameter == "rows"
        assert e.to_dict()["example"] == "rows=10"


class TestPersistenceAndConfiguration:
    def test_persistence_error_is_warning(self):
        e = PersistenceError("disk full", path="/tmp/x.json")
        assert e.severity == ErrorSeverity.WARNING
        assert e.category == ErrorCategory.PERSISTENCE
        assert e.path == "/tmp/x.json"

    def test_configuration_error_suggestion(self):
        e = ConfigurationError("bad value", setting="ORM_MCP_LOGIN_TIMEOUT")
        assert e.setting == "ORM_MCP_LOGIN_TIMEOUT"
        assert "ORM_MCP_LOGIN_TIMEOUT" in e.to_dict()["suggestion"]


class TestRetryHelpers:
    def test_is_retryable_error(self):
        assert is_retryable_error(TransientNetworkError()) is True
        assert is_retryable_error(APIError("x")) is False
        assert is_retryable_error(TimeoutError()) is True
        assert is_retryable_error(ConnectionError()) is True
        assert is_retryable_error(ValueError()) is False

    def test_retry_delay_grows(self):
        first = get_retry_delay(APIError("x"), 0, base_delay=1.0)
        third = get_retry_delay(APIError("x"), 2, base_delay=1.0)
        assert 1.0 <= first <= 1.1
        assert 4.0 <= third <= 4.4

    def test_retry_delay_uses_retry_after(self):
        delay = get_retry_delay(TransientNetworkError(retry_after=3.0), 0)
        assert 3.0 <= delay <= 3.3

    def test_retry_delay_capped(self):
        assert get_retry_delay(APIError("x"), 10) == 30.0
