"""Tests for perch.__init__: every public name resolves lazily."""

import pytest

import perch


@pytest.mark.parametrize("name", perch.__all__)
def test_all_names_resolve(name: str) -> None:
    """Every name in __all__ must resolve via __getattr__ without error."""
    obj = getattr(perch, name)
    assert obj is not None, f"perch.{name} resolved to None"


def test_router_is_the_router_class() -> None:
    from perch.router import Router

    assert perch.Router is Router


def test_unknown_name_raises_attribute_error() -> None:
    """Accessing an unregistered name raises AttributeError."""
    with pytest.raises(AttributeError, match="no attribute"):
        perch.__getattr__("ThisDoesNotExist")
