import pytest

from lexicon import extract_entities, is_question
from relevance import (
    contradiction_potential,
    find_candidate_pairs,
    profile,
    relevance_score,
    select_relevant,
)


def test_select_relevant_keeps_all_under_limit(make_statement):
    statements = [make_statement(f"ID-{i}", f"plain statement number {i}", days=i) for i in range(1, 4)]

    assert select_relevant(statements, limit=80) == statements


def test_select_relevant_keeps_top_scores_in_time_order(make_statement):
    bland = make_statement("ID-1", "went to the store earlier today", days=0)
    opinion = make_statement("ID-2", "I think this is absolutely the best, I love it", days=1)
    neutral = make_statement("ID-3", "the bus was on time this morning", days=2)
    heated = make_statement("ID-4", "I hate this, it is terrible and the worst", days=3, weight=50)

    selected = select_relevant([bland, opinion, neutral, heated], limit=2)

    assert [s.id for s in selected] == ["ID-2", "ID-4"]


def test_relevance_score_rewards_opinion_and_engagement(make_statement):
    plain = make_statement("ID-1", "went to the store earlier today")
    voiced = make_statement("ID-2", "I think the store is amazing", weight=100)

    assert relevance_score(voiced) > relevance_score(plain)


def test_opposite_preferences_form_a_pair(make_statement):
    first = make_statement("ID-1", "I love pineapple pizza", days=0)
    second = make_statement("ID-2", "I hate pineapple pizza", days=400)

    pairs = find_candidate_pairs([second, first])

    assert len(pairs) == 1
    pair = pairs[0]
    assert pair.left.id == "ID-1"
    assert pair.right.id == "ID-2"
    assert pair.potential == 0.7
    assert pair.shared_topics == ["opinion"]
    assert pair.gap_days == 400


def test_pairs_closer_than_gap_are_skipped(make_statement):
    first = make_statement("ID-1", "I love pineapple pizza", days=0)
    second = make_statement("ID-2", "I hate pineapple pizza", days=0.5)

    assert find_candidate_pairs([first, second]) == []


def test_two_questions_are_not_a_pair(make_statement):
    first = make_statement("ID-1", "Do you love pineapple pizza?", days=0)
    second = make_statement("ID-2", "Do you hate pineapple pizza?", days=100)

    assert find_candidate_pairs([first, second]) == []


def test_question_openers_count_as_questions(make_statement):
    assert is_question("Is this it?  ")
    assert is_question("What do you think of pineapple pizza")
    assert is_question("  how I learned to stop worrying")
    assert is_question("Why not.")
    assert not is_question("Whatever, pizza is fine")
    assert not is_question("However pizza is fine")

    first = make_statement("ID-1", "Why do people love pineapple pizza", days=0)
    second = make_statement("ID-2", "How can anyone hate pineapple pizza", days=100)
    assert find_candidate_pairs([first, second]) == []


def test_brand_entities_ignore_case(make_statement):
    assert extract_entities("my tesla and my IPHONE") == ["tesla", "IPHONE"]

    first = make_statement("ID-1", "I love my Tesla and its music system", days=0)
    second = make_statement("ID-2", "My tesla is terrible, I need more exercise", days=100)

    pairs = find_candidate_pairs([first, second])

    assert len(pairs) == 1
    assert pairs[0].shared_topics == []
    assert pairs[0].shared_entities == ["tesla"]


def test_pairs_need_shared_topic_or_entity(make_statement):
    first = make_statement("ID-1", "I love my new iphone so much", days=0)
    second = make_statement("ID-2", "I hate going to the gym for exercise", days=100)

    assert find_candidate_pairs([first, second]) == []


def test_near_identical_statements_are_penalized(make_statement):
    a = profile(make_statement("ID-1", "pineapple pizza tonight with friends", days=0))
    b = profile(make_statement("ID-2", "pineapple pizza tonight with friends again", days=100))

    assert contradiction_potential(a, b) == pytest.approx(0.0, abs=1e-9)


def test_max_pairs_caps_output(make_statement):
    statements = []
    for i in range(6):
        verb = "love" if i % 2 == 0 else "hate"
        statements.append(make_statement(f"ID-{i + 1}", f"I {verb} pineapple pizza", days=i * 40))

    pairs = find_candidate_pairs(statements, max_pairs=3)

    assert len(pairs) == 3
    assert all(p.left.timestamp < p.right.timestamp for p in pairs)
    assert pairs[0].potential >= pairs[-1].potential
