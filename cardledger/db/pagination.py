"""Page-size handling shared by every ledger listing."""

from cardledger.config import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT


def clamp_limit(limit: int) -> int:
    """
    Normalize a caller-supplied page size.

    0 (or less) means "use the default", never "unlimited"; anything above
    the maximum is cut down to it.
    """
    if limit <= 0:
        return DEFAULT_LIST_LIMIT
    return min(limit, MAX_LIST_LIMIT)


def clamp_offset(offset: int) -> int:
    return max(offset, 0)
