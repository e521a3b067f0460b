from models.statement import SourceContent, StatementKind
from normalizer import coerce_items, deduplicate, normalize, signature


def test_normalize_numbers_chronologically(make_item):
    content = SourceContent(
        subject="u",
        comments=[
            make_item("A later comment about the weather today", days=5),
            make_item("An earlier comment about the weather", days=1),
        ],
    )

    statements = normalize(content)

    assert [s.id for s in statements] == ["ID-1", "ID-2"]
    assert statements[0].text.startswith("An earlier")
    assert statements[0].timestamp < statements[1].timestamp


def test_normalize_drops_short_and_tombstoned(make_item):
    content = SourceContent(
        subject="u",
        comments=[
            make_item("too short"),
            make_item("[deleted]"),
            make_item("   [removed]   "),
            make_item("This one is long enough to keep around", days=1),
        ],
    )

    statements = normalize(content)

    assert len(statements) == 1
    assert statements[0].text == "This one is long enough to keep around"


def test_posts_join_title_and_body(make_item):
    content = SourceContent(
        subject="u",
        posts=[
            make_item("Body text of the post goes here", title="My title"),
            make_item("", title="A link post without any body text"),
            make_item("[removed]", title="Removed post with a long title"),
        ],
    )

    statements = normalize(content)

    assert len(statements) == 1
    assert statements[0].text == "My title Body text of the post goes here"
    assert statements[0].kind == StatementKind.POST
    assert statements[0].context_title == "My title"


def test_near_duplicates_keep_highest_weight(make_item):
    content = SourceContent(
        subject="u",
        comments=[
            make_item("Pineapple belongs on pizza, fight me!", days=0, weight=3),
            make_item("pineapple belongs on pizza... FIGHT me", days=2, weight=10),
            make_item("Pineapple belongs on pizza fight me", days=4, weight=1),
        ],
    )

    statements = normalize(content)

    assert len(statements) == 1
    assert statements[0].weight == 10
    assert statements[0].id == "ID-1"


def test_duplicate_weight_tie_keeps_most_recent(make_statement):
    older = make_statement("a", "Same words in both of these", days=0, weight=5)
    newer = make_statement("b", "same words in both of these!", days=3, weight=5)

    result = deduplicate([older, newer])

    assert [s.id for s in result] == ["b"]


def test_deduplicate_is_idempotent(make_statement):
    statements = [
        make_statement("a", "First distinct statement here", days=2),
        make_statement("b", "first distinct statement here", days=1, weight=4),
        make_statement("c", "Second distinct statement here", days=0),
    ]

    once = deduplicate(statements)
    twice = deduplicate(once)

    assert once == twice
    assert [s.id for s in once] == ["c", "b"]


def test_signature_ignores_punctuation_and_case():
    assert signature("Hello,   WORLD!!") == signature("hello world")
    assert len(signature("x" * 300)) == 100


def test_coerce_items_drops_malformed_records(make_item):
    raw = [
        {"text": "valid text body", "timestamp": 100, "venue": "pizza"},
        {"text": "missing timestamp", "venue": "pizza"},
        {"text": None, "timestamp": 100, "venue": "pizza"},
        {"text": "bad timestamp", "timestamp": "yesterday", "venue": "pizza"},
        make_item("already an item"),
    ]

    items = coerce_items(raw)

    assert [i.text for i in items] == ["valid text body", "already an item"]


def test_normalize_empty_content():
    assert normalize(SourceContent(subject="nobody")) == []
