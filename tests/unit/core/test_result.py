"""Unit tests for Result values and NormalizeError."""

import pytest

from twinmap.core import Err, NormalizeError, Ok, map_ok


class TestResult:
    def test_ok(self):
        result = Ok(3)
        assert result.is_ok() and not result.is_err()
        assert result.unwrap() == 3
        with pytest.raises(ValueError):
            result.unwrap_err()

    def test_err(self):
        result = Err(NormalizeError.invalid_input("boom"))
        assert result.is_err()
        assert str(result.unwrap_err()) == "Invalid input file (boom)"
        with pytest.raises(ValueError):
            result.unwrap()

    def test_map_ok(self):
        assert map_ok(Ok(2), lambda v: v * 2) == Ok(4)
        err = Err("nope")
        assert map_ok(err, lambda v: v * 2) is err
