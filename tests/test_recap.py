from pos_recap.backend.aggregator import PaymentMethod, SalesRecap, aggregate


def test_empty_subset_is_all_zero():
    result = aggregate([])

    assert result.gross_revenue == 0
    assert result.cost_basis == 0
    assert result.net_profit == 0
    assert result.revenue_by_payment_method == {
        PaymentMethod.CASH: 0,
        PaymentMethod.QRIS: 0,
        PaymentMethod.CREDIT: 0,
    }
    assert result.product_rollups == []
    assert result.transaction_count == 0


def test_totals_and_payment_breakdown(at, make_record):
    records = [
        make_record(at(2024, 5, 10), "cash", gross_total=50000, cost_total=30000),
        make_record(at(2024, 5, 10), "qris", gross_total=20000, cost_total=10000),
    ]

    result = aggregate(records)

    assert result.gross_revenue == 70000
    assert result.cost_basis == 40000
    assert result.net_profit == 30000
    assert result.to_dict()["revenue_by_payment_method"] == {
        "cash": 50000,
        "qris": 20000,
        "credit": 0,
    }


def test_stored_totals_are_trusted(at, make_record):
    # line items say 10000, the stored total says 12000
    record = make_record(
        at(2024, 5, 10),
        items=(("Kopi", 10000, 5000, 1),),
        gross_total=12000,
        cost_total=5000,
    )

    result = aggregate([record])

    assert result.gross_revenue == 12000
    assert result.product_rollups[0].total_revenue == 10000


def test_missing_cost_total_counts_as_zero(at, make_record):
    record = make_record(at(2024, 5, 10), gross_total=15000)
    legacy = record.__class__(
        id="legacy",
        timestamp=record.timestamp,
        payment_method=record.payment_method,
        line_items=record.line_items,
        gross_total=15000,
        cost_total=None,
    )

    result = aggregate([record, legacy])

    assert result.gross_revenue == 30000
    assert result.cost_basis == record.cost_total
    assert result.net_profit == 30000 - record.cost_total


def test_credit_sales_are_reported_separately(at, make_record):
    records = [
        make_record(at(2024, 5, 10), "credit", gross_total=8000),
        make_record(at(2024, 5, 10), "hutang", gross_total=2000),
        make_record(at(2024, 5, 10), "cash", gross_total=5000),
    ]

    result = aggregate(records)

    assert result.revenue_by_payment_method[PaymentMethod.CREDIT] == 10000
    assert sum(result.revenue_by_payment_method.values()) == result.gross_revenue


def test_same_product_is_rolled_up(at, make_record):
    records = [
        make_record(at(2024, 5, 10), items=(("Kopi", 10000, 4000, 3),)),
        make_record(at(2024, 5, 10), items=(("Kopi", 10000, 4000, 2),)),
    ]

    rollups = aggregate(records).product_rollups

    assert len(rollups) == 1
    assert rollups[0].to_dict() == {
        "product_name": "Kopi",
        "total_quantity": 5,
        "total_revenue": 50000,
    }


def test_rollups_sorted_by_quantity_with_stable_ties(at, make_record):
    records = [
        make_record(at(2024, 5, 10), items=(("Teh", 5000, 2000, 2), ("Roti", 8000, 3000, 5))),
        make_record(at(2024, 5, 10), items=(("Susu", 7000, 3000, 2),)),
        make_record(at(2024, 5, 10), items=(("Kopi", 10000, 4000, 5),)),
        make_record(at(2024, 5, 10), items=(("Air", 3000, 1000, 1),)),
    ]

    rollups = aggregate(records).product_rollups

    assert [r.product_name for r in rollups] == ["Roti", "Kopi", "Teh", "Susu", "Air"]
    quantities = [r.total_quantity for r in rollups]
    assert quantities == sorted(quantities, reverse=True)


def test_record_without_line_items_contributes_totals_only(at, make_record):
    records = [
        make_record(at(2024, 5, 10), items=(), gross_total=9000, cost_total=1000),
        make_record(at(2024, 5, 10), items=(("Kopi", 10000, 4000, 1),)),
    ]

    result = aggregate(records)

    assert result.gross_revenue == 19000
    assert [r.product_name for r in result.product_rollups] == ["Kopi"]


def test_net_profit_is_exact_for_integer_amounts(at, make_record):
    records = [
        make_record(at(2024, 5, 10), items=(("A", 12345, 6789, 3),)),
        make_record(at(2024, 5, 10), items=(("B", 99999, 11111, 7),)),
    ]

    result = aggregate(records)

    assert isinstance(result.gross_revenue, int)
    assert result.net_profit == result.gross_revenue - result.cost_basis
    assert result.net_profit == (12345 - 6789) * 3 + (99999 - 11111) * 7


def test_calculate_is_idempotent(at, make_record):
    records = [
        make_record(at(2024, 5, 10), "qris", items=(("Kopi", 10000, 4000, 2), ("Teh", 5000, 2000, 2))),
        make_record(at(2024, 5, 10), "cash", items=(("Teh", 5000, 2000, 1),)),
    ]
    recap = SalesRecap(records)

    first = recap.calculate()
    second = recap.calculate()

    assert first.to_dict() == second.to_dict()
    assert first == second
    assert aggregate(records).to_dict() == first.to_dict()
