import random

from flashdeck.models.card import Card
from flashdeck.services.quiz import (
    MEANING,
    PINYIN,
    QuizSession,
    build_options,
    question_kind,
    select_quiz_cards,
)


def test_three_seen_cards_are_topped_up_from_basic_words(store):
    hsk = store.cards_for_category("HSK 1")
    for c in hsk[:3]:
        store.mark_seen(c.id)
    session = QuizSession.build(store, size=10, rng=random.Random(1))
    ids = [c.id for c in session.cards]
    assert len(ids) == 10
    assert len(set(ids)) == 10
    assert {c.id for c in hsk[:3]} <= set(ids)
    assert sum(1 for c in session.cards if c.category == "Basic Words") == 7


def test_enough_seen_cards_fills_session_from_seen_only(store):
    for c in store.cards[:15]:
        store.mark_seen(c.id)
    session = QuizSession.build(store, size=10, rng=random.Random(2))
    assert len(session) == 10
    assert all(c.seen for c in session.cards)


def test_short_pool_gives_smaller_session():
    seen = [Card.create("a", "a", "a", "a", "a", "X")]
    fallback = [Card.create("b", "b", "b", "b", "b", "Basic Words")]
    picked = select_quiz_cards(seen, fallback, 10, random.Random(0))
    assert [c.chinese for c in sorted(picked, key=lambda c: c.chinese)] == ["a", "b"]
    assert select_quiz_cards(seen, fallback, 0) == []


def test_question_kinds_alternate():
    assert [question_kind(i) for i in range(4)] == [PINYIN, MEANING, PINYIN, MEANING]


def test_options_have_four_distinct_values_with_answer(store):
    target = store.cards[0]
    opts = build_options(target, PINYIN, store.cards, random.Random(5))
    assert len(opts) == 4
    assert len(set(opts)) == 4
    assert target.pinyin in opts
    opts = build_options(target, MEANING, store.cards, random.Random(5))
    assert target.english in opts


def test_options_on_tiny_deck():
    a = Card.create("a", "pa", "ea", "", "", "X")
    b = Card.create("b", "pa", "eb", "", "", "X")
    # duplicate transcriptions collapse, so only the answer is left
    assert build_options(a, PINYIN, [a, b]) == ["pa"]
    assert sorted(build_options(a, MEANING, [a, b])) == ["ea", "eb"]


def test_answering_updates_score_and_schedule(store):
    session = QuizSession.build(store, size=4, rng=random.Random(3))
    q = session.current
    assert q.kind == PINYIN
    assert session.answer(q.answer) is True
    graded = store.get_card(q.card.id)
    assert graded.review_count == 1 and graded.streak_count == 1

    # a question is graded only once
    assert session.answer("wrong") is True
    assert store.quiz_score.total == 1

    assert session.next()
    q2 = session.current
    assert q2.kind == MEANING
    assert session.answer("definitely wrong") is False
    assert (store.quiz_score.correct, store.quiz_score.total) == (1, 2)
    assert store.get_card(q2.card.id).streak_count == 0


def test_session_completion_and_restart(store):
    session = QuizSession.build(store, size=3, rng=random.Random(4))
    assert not session.is_complete
    for _ in range(len(session)):
        session.answer(session.current.answer)
        session.next()
    assert session.is_complete
    assert not session.next()
    assert session.previous()
    assert store.quiz_score.correct == 3

    again = session.restart()
    assert store.quiz_score.total == 0
    assert not again.is_complete


def test_empty_deck_gives_empty_session(store):
    store.replace_all([])
    session = QuizSession.build(store)
    assert session.is_empty
    assert session.current is None
    assert session.answer("x") is False
