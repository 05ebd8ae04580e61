import pytest

from hbridge.units import from_internal_length, to_internal_length


def test_units_roundtrip():
    assert to_internal_length(1.0, "nm") == 10.0
    assert from_internal_length(10.0, "nm") == 1.0
    assert to_internal_length(3.5, "A") == 3.5
    assert to_internal_length(0.35, " Nanometers ") == pytest.approx(3.5)


def test_unknown_unit_rejected():
    with pytest.raises(ValueError):
        to_internal_length(1.0, "pm")
    with pytest.raises(ValueError):
        from_internal_length(1.0, "bohr")
