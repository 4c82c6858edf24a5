"""Unit tests for listing order and pagination."""

from integrations.imessage.pagination import paginate, sort_newest_first
from integrations.imessage.parser import row_to_message
from tests.helpers import MESSAGE_DEFAULTS


def _message(rowid: int, date: int):
    row = {**MESSAGE_DEFAULTS, "ROWID": rowid, "guid": f"msg-{rowid}", "date": date}
    return row_to_message(row, conversation_guid="chat-guid")


class TestPaginate:
    """Tests for offset/limit windows."""

    def test_window(self):
        assert paginate(list(range(10)), 2, 3) == [2, 3, 4]

    def test_offset_past_end_is_empty(self):
        """An offset beyond the data yields an empty page, not an error."""
        assert paginate([1, 2, 3], 10, 5) == []

    def test_limit_past_end_truncates(self):
        assert paginate([1, 2, 3], 1, 50) == [2, 3]

    def test_zero_limit(self):
        assert paginate([1, 2, 3], 0, 0) == []

    def test_negative_bounds_clamp(self):
        assert paginate([1, 2, 3], -5, 2) == [1, 2]
        assert paginate([1, 2, 3], 0, -1) == []

    def test_returns_new_list(self):
        items = [1, 2, 3]
        page = paginate(items, 0, 3)
        page.append(4)
        assert items == [1, 2, 3]


class TestSortNewestFirst:
    """Tests for message ordering."""

    def test_orders_by_creation_descending(self):
        """Dates 0..10 with offset 2 and limit 3 give dates 8, 7, 6."""
        messages = [_message(i + 1, date * 1_000_000) for i, date in enumerate(range(11))]
        page = paginate(sort_newest_first(messages), 2, 3)
        assert [m.original_rowid for m in page] == [9, 8, 7]
        assert [m.date_created for m in page] == sorted(
            (m.date_created for m in page), reverse=True
        )

    def test_input_order_irrelevant(self):
        messages = [_message(1, 5_000_000), _message(2, 9_000_000), _message(3, 1_000_000)]
        assert [m.original_rowid for m in sort_newest_first(messages)] == [2, 1, 3]
