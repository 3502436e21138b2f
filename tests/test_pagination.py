"""Tests for sorting and paging aggregated rows."""

import pytest

from pos_recon.reporting.aggregation import AggregateGroup, aggregate_by_dimension
from pos_recon.reporting.allocation import allocate_items
from pos_recon.reporting.errors import InvalidReportRequest
from pos_recon.reporting.pagination import MAX_PAGE_SIZE, grand_total, paginate, sort_rows


def _group(key, net, customers=(), orders=()):
    group = AggregateGroup(key=key, label=str(key), net_revenue=net, customer_paid=net)
    group.customer_identities.update(customers)
    group.order_keys.update(orders)
    return group


@pytest.fixture
def groups():
    return [
        _group("2026-10-01", 500, [("id", 1)], [1]),
        _group("2026-10-02", 900, [("id", 1), ("id", 2)], [2, 3]),
        _group("2026-10-03", 500, [("id", 3)], [4]),
        _group("2026-10-04", 100, [("id", 2)], [5]),
        _group("2026-10-05", 700, [], []),
    ]


class TestSorting:
    def test_daily_ties_broken_by_date_ascending(self, groups):
        page = paginate(groups, dimension="date", page_size=10)
        assert [g.key for g in page.rows] == [
            "2026-10-02", "2026-10-05", "2026-10-01", "2026-10-03", "2026-10-04"
        ]

    def test_other_dimensions_break_ties_descending(self):
        rows = [_group(1, 300), _group(3, 300), _group(2, 300)]
        page = paginate(rows, dimension="product")
        assert [g.key for g in page.rows] == [3, 2, 1]

    def test_explicit_ascending_sort(self, groups):
        page = paginate(groups, sort=("net_revenue", False), dimension="date")
        assert [g.net_revenue for g in page.rows] == [100, 500, 500, 700, 900]

    def test_sort_by_key(self, groups):
        ordered = sort_rows(groups, "key", key_descending=False)
        assert [g.key for g in ordered] == sorted(g.key for g in groups)

    def test_mixed_key_types(self):
        ordered = sort_rows([_group("b", 1), _group(2, 1), _group("a", 1)], "key", key_descending=False)
        assert [g.key for g in ordered] == [2, "a", "b"]

    def test_unknown_sort_field(self, groups):
        with pytest.raises(InvalidReportRequest):
            paginate(groups, sort="profit")


class TestPaging:
    def test_pages_reconstruct_full_list(self, groups):
        full = paginate(groups, dimension="date", page_size=100).rows
        collected = []
        first = paginate(groups, dimension="date", page_size=2)
        for number in range(1, first.total_pages + 1):
            collected.extend(paginate(groups, dimension="date", page_size=2, page=number).rows)
        assert collected == full
        assert first.total_pages == 3
        assert first.total_count == 5

    def test_page_past_end_is_empty(self, groups):
        page = paginate(groups, page_size=2, page=9)
        assert page.rows == []
        assert page.total_pages == 3

    @pytest.mark.parametrize("size, expected", [(0, 1), (-4, 1), (10 ** 6, MAX_PAGE_SIZE), ("x", 20)])
    def test_page_size_clamped(self, groups, size, expected):
        assert paginate(groups, page_size=size).page_size == expected

    def test_page_number_clamped(self, groups):
        assert paginate(groups, page=-3).page == 1

    def test_infinite_paging_values_clamped(self, groups):
        page = paginate(groups, page_size=float("inf"), page=float("-inf"))
        assert page.page_size == 20
        assert page.page == 1
        assert len(page.rows) == 5

    def test_empty_input(self):
        page = paginate([])
        assert page.rows == []
        assert page.total_pages == 0
        assert page.grand_total.order_count == 0


class TestGrandTotal:
    def test_covers_all_groups_not_just_page(self, groups):
        page = paginate(groups, page_size=1)
        assert page.grand_total.net_revenue == 2700
        assert page.grand_total.order_count == 5

    def test_customers_counted_once_across_groups(self, groups):
        assert grand_total(groups).unique_customer_count == 3

    def test_item_rows(self, exclusive_order):
        items = [
            {"orderId": 1, "productId": 1, "quantity": 2, "unitPrice": 30000},
            {"orderId": 1, "productId": 2, "quantity": 4, "unitPrice": 10000},
        ]
        rows = allocate_items(exclusive_order, items)
        page = paginate(rows, page_size=1)
        assert [r.product_id for r in page.rows] == [1]
        assert page.grand_total.customer_paid == pytest.approx(98000)
        assert page.grand_total.order_count == 1
        assert page.grand_total.quantity == 6

    def test_to_dict(self, sample_snapshot):
        orders, items = sample_snapshot
        data = paginate(aggregate_by_dimension(orders, items, "channel"), dimension="channel").to_dict()
        assert data["totalCount"] == 2
        assert data["grandTotal"]["cancelledOrders"] == 1
        assert data["page"][0]["key"] == "takeaway"
