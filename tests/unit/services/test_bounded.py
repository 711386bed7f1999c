"""Unit tests for the fixed-capacity frequency table."""

import pytest

from insights_service.services.search_insights import BoundedDict


class TestBoundedDict:
    """Tests for capacity enforcement without eviction."""

    def test_refuses_new_keys_when_full(self) -> None:
        table: BoundedDict[str, int] = BoundedDict(2)
        table["a"] = 1
        table["b"] = 2
        table["c"] = 3

        assert dict(table) == {"a": 1, "b": 2}
        assert table.rejected == 1
        assert table.is_full

    def test_existing_keys_keep_updating(self) -> None:
        table: BoundedDict[str, int] = BoundedDict(1)
        assert table.increment("a")
        assert table.increment("a", 4)
        assert not table.increment("b")

        assert table["a"] == 5
        assert "b" not in table

    def test_get_or_create(self) -> None:
        table: BoundedDict[str, list] = BoundedDict(1)
        first = table.get_or_create("a", list)
        first.append(1)

        assert table.get_or_create("a", list) == [1]
        assert table.get_or_create("b", list) is None
        assert table.rejected == 1

    def test_setdefault_respects_capacity(self) -> None:
        table: BoundedDict[str, int] = BoundedDict(1)
        assert table.setdefault("a", 7) == 7
        assert table.setdefault("a", 9) == 7
        assert table.setdefault("b", 1) is None

    def test_update_goes_through_capacity_check(self) -> None:
        table: BoundedDict[str, int] = BoundedDict(2)
        table.update({"a": 1, "b": 2, "c": 3})
        assert len(table) == 2

    def test_zero_capacity(self) -> None:
        table: BoundedDict[str, int] = BoundedDict(0)
        table["a"] = 1
        assert len(table) == 0

    def test_negative_capacity_rejected(self) -> None:
        with pytest.raises(ValueError):
            BoundedDict(-1)
