from batching import partition


def test_partition_preserves_order_and_drops_nothing(make_statement):
    statements = [make_statement(f"ID-{i}", "x" * 400, days=i) for i in range(1, 11)]

    batches = partition(statements, max_tokens=300)

    assert [s for batch in batches for s in batch] == statements
    assert all(batch for batch in batches)
    # 100 estimated tokens each, three per batch
    assert [len(b) for b in batches] == [3, 3, 3, 1]


def test_oversized_statement_gets_its_own_batch(make_statement):
    small = make_statement("ID-1", "short text")
    huge = make_statement("ID-2", "y" * 20_000)
    tail = make_statement("ID-3", "another short text")

    batches = partition([small, huge, tail], max_tokens=3000)

    assert [[s.id for s in b] for b in batches] == [["ID-1"], ["ID-2"], ["ID-3"]]


def test_partition_uses_custom_estimator(make_statement):
    statements = [make_statement(f"ID-{i}", "anything") for i in range(1, 6)]

    batches = partition(statements, max_tokens=2, estimate=lambda text: 1)

    assert [len(b) for b in batches] == [2, 2, 1]


def test_partition_empty_input():
    assert partition([]) == []
