from __future__ import annotations

import pytest

from core.domain.params import BoolParam, IntListParam, IntParam, ParameterBag, StrParam, is_present


def test_unset_and_empty_values_leave_bag_empty() -> None:
    bag = ParameterBag()
    bag.set_str("account_name", None)
    bag.set_str("account_title", "")
    bag.set_int("folder_id", None)
    bag.set_bool("personal_account", None)
    bag.set_int_list("account_ids", None)

    assert len(bag) == 0
    assert not bag
    assert bag.keys() == []


def test_zero_and_false_are_kept() -> None:
    bag = ParameterBag()
    bag.set_int("folder_id", 0)
    bag.set_bool("personal_account", False)

    assert bag.get("folder_id") == IntParam(0)
    assert bag.get("personal_account") == BoolParam(False)


def test_strings_are_kept_verbatim() -> None:
    bag = ParameterBag()
    bag.set_str("notes", " spaced ")
    assert bag.get("notes") == StrParam(" spaced ")


def test_int_list_drops_unknown_entries_only_when_rendered() -> None:
    param = IntListParam.of([1, None, 3])
    assert param.value == (1, None, 3)
    assert param.known() == [1, 3]


def test_empty_int_list_is_known() -> None:
    bag = ParameterBag()
    bag.set_int_list("account_ids", [])
    assert "account_ids" in bag


def test_set_overwrites_previous_value() -> None:
    bag = ParameterBag()
    bag.set("account_name", StrParam("a"))
    bag.set("account_name", StrParam("b"))
    assert bag.get("account_name") == StrParam("b")
    assert len(bag) == 1


def test_unsupported_value_type() -> None:
    with pytest.raises(TypeError):
        is_present("raw string")  # type: ignore[arg-type]
