"""Tests for the Ok/Err result type."""

import pytest

from lakesim.result import Err, Ok, err


def test_ok_unwraps():
    result = Ok(5)
    assert result.is_ok() and not result.is_err()
    assert result.unwrap() == 5
    assert result.unwrap_or(0) == 5
    assert result.error is None


def test_err_unwrap_raises():
    result = err("capacity reached")
    assert result.is_err()
    assert result.unwrap_or(-1) == -1
    assert result.value is None
    with pytest.raises(ValueError, match="capacity reached"):
        result.unwrap()


def test_map_and_chain():
    assert Ok(2).map(lambda x: x * 3) == Ok(6)
    assert Err("x").map(lambda x: x * 3) == Err("x")
    assert Err("x").map_err(lambda e: f"spawn failed: {e}") == Err("spawn failed: x")
    assert Ok(2).and_then(lambda x: Ok(x + 1)) == Ok(3)
    assert Ok(2).and_then(lambda x: Err("no")) == Err("no")
