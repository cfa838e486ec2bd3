"""Tests for spur.errors: exception hierarchy and error normalization."""

import contextlib
from collections.abc import Iterator

import pytest

from spur.errors import (
    ConfigurationError,
    Error,
    HTTPStatusError,
    PanicError,
    ProtocolError,
    SpurError,
    app_error,
    is_structured,
    parse_error,
)


class _Teapot(Exception):
    status = 418

    def __str__(self) -> str:
        return "short and stout"


class _BoolStatus(Exception):
    status = True


class TestHierarchy:
    def test_error_is_spur_error(self) -> None:
        assert issubclass(Error, SpurError)

    def test_protocol_error_is_spur_error(self) -> None:
        assert issubclass(ProtocolError, SpurError)

    def test_configuration_error_is_spur_error(self) -> None:
        assert issubclass(ConfigurationError, SpurError)

    def test_app_error_prefix(self) -> None:
        err = app_error("no middleware")
        assert isinstance(err, ConfigurationError)
        assert str(err) == "[App] no middleware"


class TestError:
    def test_fields(self) -> None:
        err = Error(404, "not found", {"path": "/x"})
        assert err.status == 404
        assert err.message == "not found"
        assert err.meta == {"path": "/x"}

    def test_str_is_message(self) -> None:
        assert str(Error(400, "bad input")) == "bad input"

    def test_meta_defaults_to_none(self) -> None:
        assert Error(500).meta is None

    def test_survives_context_manager(self) -> None:
        @contextlib.contextmanager
        def scope() -> Iterator[None]:
            yield

        with pytest.raises(Error) as info:
            with scope():
                raise Error(404, "not found")
        assert info.value.status == 404

    def test_add_note(self) -> None:
        err = Error(400, "bad")
        err.add_note("while parsing")
        assert err.__notes__ == ["while parsing"]

    def test_can_be_raised(self) -> None:
        with pytest.raises(Error) as info:
            raise Error(403, "forbidden")
        assert info.value.status == 403


class TestProtocolError:
    def test_str(self) -> None:
        assert str(ProtocolError(400, "bad header")) == "400 bad header"


class TestPanicError:
    def test_carries_cause_and_snapshot(self) -> None:
        cause = ValueError("oops")
        err = PanicError(cause, "GET / HTTP/1.1")
        assert err.value is cause
        assert err.__cause__ is cause
        assert str(err) == "panic recovered: ValueError('oops'); GET / HTTP/1.1"


class TestParseError:
    def test_none(self) -> None:
        assert parse_error(None) is None

    def test_structured_error_passes_through(self) -> None:
        err = Error(404, "not found")
        assert parse_error(err) is err

    def test_structured_error_ignores_fallback(self) -> None:
        err = Error(404, "not found")
        assert parse_error(err, 409).status == 404

    def test_protocol_error(self) -> None:
        exc = ProtocolError(400, "malformed body")
        err = parse_error(exc)
        assert err.status == 400
        assert err.message == "malformed body"
        assert err.meta is exc

    def test_status_capability(self) -> None:
        exc = _Teapot()
        err = parse_error(exc)
        assert err.status == 418
        assert err.message == "short and stout"
        assert err.meta is exc

    def test_generic_defaults_to_500(self) -> None:
        exc = RuntimeError("boom")
        err = parse_error(exc)
        assert err.status == 500
        assert err.message == "boom"
        assert err.meta is exc

    def test_generic_uses_fallback_code(self) -> None:
        assert parse_error(RuntimeError("boom"), 503).status == 503

    def test_non_positive_fallback_ignored(self) -> None:
        assert parse_error(RuntimeError("boom"), 0).status == 500
        assert parse_error(RuntimeError("boom"), -1).status == 500

    def test_bool_status_is_not_a_capability(self) -> None:
        assert parse_error(_BoolStatus("x")).status == 500


class TestIsStructured:
    def test_structured_shapes(self) -> None:
        assert is_structured(Error(400))
        assert is_structured(ProtocolError(400, "x"))
        assert is_structured(_Teapot())

    def test_plain_exception(self) -> None:
        assert not is_structured(RuntimeError("boom"))

    def test_capability_protocol(self) -> None:
        assert isinstance(_Teapot(), HTTPStatusError)
        assert not isinstance(RuntimeError(), HTTPStatusError)
