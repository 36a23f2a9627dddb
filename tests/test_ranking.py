import logging

import pytest

from conftest import course, profile

from partnermatch.errors import InvalidCriteria
from partnermatch.models import ConnectionRecord, MatchResult, SearchCriteria
from partnermatch.ranking import list_partners, rank, search, validate_criteria


def result(cid, score):
    return MatchResult(candidate_id=cid, score=score, breakdown=[], shared_courses=[], shared_topics_count=0)


def me():
    return profile(
        "me",
        [course("c1", "Algebra", "MAT101"), course("c2", "Biology", "BIO100")],
        institution="MIT",
        program="Computer Science",
        year=2,
    )


def test_rank_orders_by_score_then_id():
    ranked = rank([result("b", 50), result("c", 70), result("a", 50)])
    assert [r.candidate_id for r in ranked] == ["c", "a", "b"]


def test_rank_truncates_to_limit():
    ranked = rank([result(str(i), i) for i in range(10)], limit=3)
    assert [r.score for r in ranked] == [9, 8, 7]


@pytest.mark.parametrize("limit", [0, -5, 1001, "10", 2.5, True])
def test_invalid_limit_is_rejected(limit):
    with pytest.raises(InvalidCriteria):
        validate_criteria(SearchCriteria(limit=limit))


def test_default_limit():
    assert validate_criteria(SearchCriteria()) == 100
    assert validate_criteria(SearchCriteria(limit=None)) == 100


def test_invalid_criteria_rejected_before_scoring():
    class Exploding:
        def __iter__(self):
            raise AssertionError("candidates should not be touched")

        def __len__(self):
            return 0

    with pytest.raises(InvalidCriteria):
        search(me(), SearchCriteria(limit=-1), Exploding(), [])


def test_search_ranks_and_resolves_connections():
    candidates = [
        profile("zed", [course("c1", "Algebra", "MAT101")], institution="MIT", program="Computer Science", year=2),
        profile("amy", [course("c1", "Algebra", "MAT101")], institution="MIT", program="Computer Science", year=2),
        profile("bob", [course("c9", "Sculpture", "ART300")], institution="Yale", program="Fine Art", year=5),
    ]
    connections = [
        ConnectionRecord(id="r1", requester_id="me", recipient_id="zed", status="pending"),
        ConnectionRecord(id="r2", requester_id="bob", recipient_id="me", status="pending"),
    ]
    results = search(me(), SearchCriteria(), candidates, connections)

    assert [r.candidate_id for r in results] == ["amy", "zed", "bob"]
    assert results[0].score == results[1].score == 15 + 30 + 7 + 3
    zed = results[1]
    assert zed.is_pending_sent and not zed.is_pending_received
    bob = results[2]
    assert bob.score == 0
    assert bob.breakdown == []
    assert bob.is_pending_received and not bob.is_pending_sent
    assert bob.recommendation_reason == "Active student looking for study partners"
    for r in results:
        assert not (r.is_pending_sent and r.is_pending_received)


def test_search_is_deterministic():
    candidates = [
        profile(f"u{i}", [course("c1", "Algebra")], institution="MIT" if i % 2 else "Yale", year=i % 4)
        for i in range(12)
    ]
    first = search(me(), SearchCriteria(), candidates, [])
    second = search(me(), SearchCriteria(), list(reversed(candidates)), [])
    assert [(r.candidate_id, r.score) for r in first] == [(r.candidate_id, r.score) for r in second]


def test_search_skips_self_inactive_and_courseless_candidates():
    candidates = [
        me(),
        profile("idle", [course("c1", "Algebra")], is_active=False),
        profile("empty", []),
        profile("dropped", [course("c1", "Algebra", status="inactive")]),
        profile("ok", [course("c1", "Algebra")]),
    ]
    results = search(me(), SearchCriteria(), candidates, [])
    assert [r.candidate_id for r in results] == ["ok"]


def test_search_filters_by_institution_and_term():
    candidates = [
        profile("a", [course("c1", "Algebra")], institution="MIT", first_name="Alice"),
        profile("b", [course("c2", "Quantum Optics", "PHY400")], institution="MIT", first_name="Bob"),
        profile("c", [course("c1", "Algebra")], institution="Yale", first_name="Alice"),
    ]
    results = search(me(), SearchCriteria(institution="MIT", search_term="alice"), candidates, [])
    assert [r.candidate_id for r in results] == ["a"]
    results = search(me(), SearchCriteria(search_term="phy4"), candidates, [])
    assert [r.candidate_id for r in results] == ["b"]


def test_search_tolerates_raw_and_malformed_records(caplog):
    candidates = [
        {"userId": "raw", "institution": "MIT", "preferences": "{nope", "courses": [{"courseId": "c1", "name": "Algebra"}]},
        "garbage",
        None,
    ]
    with caplog.at_level(logging.INFO):
        results = search(me(), SearchCriteria(), candidates, [])
    assert [r.candidate_id for r in results] == ["raw"]
    assert results[0].score == 15 + 3


def test_search_displays_all_shared_courses_but_caps_points():
    names = ["Algebra", "Biology", "Chemistry", "Drawing", "Economics", "French"]
    mine = profile("me", [course(f"c{i}", n) for i, n in enumerate(names)])
    other = profile("o", [course(f"c{i}", n) for i, n in enumerate(names)])
    [r] = search(mine, SearchCriteria(), [other], [])
    assert len(r.shared_courses) == 6
    assert r.score == 60
    assert r.to_dict()["sharedCourses"] == names
    assert r.to_dict()["hasMatchedCourses"] is True


def test_list_partners_only_accepted_newest_first():
    partners = [
        profile("p1", [course("c1", "Algebra")]),
        profile("p2", [course("c2", "Biology")]),
        profile("p3", [course("c1", "Algebra")]),
    ]
    connections = [
        ConnectionRecord(id="x1", requester_id="me", recipient_id="p1", status="accepted", updated_at="2026-01-01"),
        ConnectionRecord(id="x2", requester_id="p2", recipient_id="me", status="accepted", updated_at="2026-02-01"),
        ConnectionRecord(id="x3", requester_id="me", recipient_id="p3", status="pending", updated_at="2026-03-01"),
    ]
    results = list_partners(me(), partners, connections)
    assert [r.candidate_id for r in results] == ["p2", "p1"]
    assert all(r.connection_status == "accepted" for r in results)
    assert results[0].breakdown == ["Shared courses ×1: +15"]


def test_search_scores_candidate_with_wrongly_shaped_preferences():
    raw = {
        "id": "p",
        "institution": "MIT",
        "preferences": '{"availability": {"N": "x"}, "studyStyle": {"L": 5}}',
        "courses": [{"courseId": "c1", "name": "Algebra"}],
    }
    [r] = search(me(), SearchCriteria(), [raw], [])
    assert r.candidate_id == "p"
    assert r.score == 15 + 3
    assert r.preferences.study_style is None


def test_list_partners_scores_partner_with_wrongly_shaped_preferences():
    raw = {"id": "p", "preferences": '{"groupSize": {"M": 1}}', "courses": [{"courseId": "c1", "name": "Algebra"}]}
    connections = [ConnectionRecord(id="x", requester_id="me", recipient_id="p", status="accepted")]
    [r] = list_partners(me(), [raw], connections)
    assert r.candidate_id == "p"
    assert r.preferences.group_size is None
    assert r.breakdown == ["Shared courses ×1: +15"]
