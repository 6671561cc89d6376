from cardledger.config import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT
from cardledger.db.pagination import clamp_limit, clamp_offset


class TestClampLimit:
    def test_zero_means_default(self) -> None:
        assert clamp_limit(0) == DEFAULT_LIST_LIMIT

    def test_negative_means_default(self) -> None:
        assert clamp_limit(-5) == DEFAULT_LIST_LIMIT

    def test_within_range_kept(self) -> None:
        assert clamp_limit(25) == 25

    def test_above_maximum_clamped(self) -> None:
        assert clamp_limit(MAX_LIST_LIMIT + 1) == MAX_LIST_LIMIT
        assert clamp_limit(MAX_LIST_LIMIT) == MAX_LIST_LIMIT


class TestClampOffset:
    def test_negative_offset_is_zero(self) -> None:
        assert clamp_offset(-3) == 0

    def test_offset_kept(self) -> None:
        assert clamp_offset(40) == 40
