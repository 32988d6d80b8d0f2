"""
Row Layout Conformance Tests

INVARIANT: Every printed row has fixed-width columns.

    ∀ name, kind, data, id:
        row = [name≤8] padded to 10 | kind≤10 | data≤40 | id≤40

Over-long fields are cut, never wrapped, and never raise.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from transferid import format_row

from tests.helpers import parse_row


printable = st.text(max_size=120)


class TestRowLayout:

    @given(printable, printable, printable, st.one_of(st.none(), printable))
    @settings(max_examples=300)
    def test_row_is_exactly_one_hundred_wide(self, name, kind, data, correlation_id):
        row = format_row(name, kind, data, correlation_id)
        assert len(row) == 100

    @given(printable, printable, printable, printable)
    @settings(max_examples=200)
    def test_columns_hold_field_prefixes(self, name, kind, data, correlation_id):
        row = format_row(name, kind, data, correlation_id)
        assert row[0:10].rstrip() == f"[{name[:8]}]".rstrip()
        assert row[10:20] == f"{kind[:10]:<10}"
        assert row[20:60] == f"{data[:40]:<40}"
        assert row[60:100] == f"{correlation_id[:40]:<40}"

    @given(st.text(alphabet="abc", min_size=41, max_size=200))
    @settings(max_examples=50)
    def test_long_message_cut_at_forty(self, data):
        assert parse_row(format_row("BOB", "Message", data, "/a/id"))[2] == data[:40]
