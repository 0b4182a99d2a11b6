import pytest
from sqlmodel import select

from ndrop.models import EventMatchRecommendation, UserProfile
from ndrop.services import meetings, recommendations
from ndrop.services.ai_client import AIRecommendation
from ndrop.models.matching import DEFAULT_SCORING_WEIGHTS
from ndrop.services.errors import ForbiddenError, UpstreamError


class FakeRanker:
    def __init__(self, result=None, error=None):
        self.result = result or []
        self.error = error
        self.calls = []

    def rank(self, user_profile, candidates, event_context=None):
        self.calls.append((user_profile, candidates, event_context))
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def crowd(session, make_user, make_event, add_participant):
    event = make_event()
    me = make_user("Me", work_field="AI", role="engineer", company="Acme", interest_keywords=["llm", "rust"])
    twin = make_user("Twin", work_field="AI", role="engineer", job_title="ML Engineer", interest_keywords=["LLM"])
    peer = make_user("Peer", work_field="AI", company="Beta")
    stranger = make_user("Stranger", work_field="Retail", company="Shop")
    ghost = make_user("Ghost")
    for user in (me, twin, peer, stranger, ghost):
        add_participant(event, user)
    return event, me, twin, peer, stranger, ghost


def test_score_pair_uses_weights():
    me = UserProfile(work_field="AI", role="pm", interest_keywords=["llm", "rust", "go"])
    other = UserProfile(work_field="ai ", role="PM", interest_keywords=["Rust", "go", "java"])

    score, reasons = recommendations.score_pair(me, other, DEFAULT_SCORING_WEIGHTS)

    assert score == 30 + 20 + 2 * 5
    assert len(reasons) == 3


def test_incomplete_profiles_are_not_recommended():
    assert not recommendations.is_complete_profile(None)
    assert not recommendations.is_complete_profile(UserProfile(full_name="Name only"))
    assert not recommendations.is_complete_profile(UserProfile(company="No name"))
    assert recommendations.is_complete_profile(UserProfile(nickname="nick", company="Acme"))


def test_baseline_orders_by_score_and_skips_incomplete(session, crowd):
    event, me, twin, peer, stranger, ghost = crowd

    items = recommendations.baseline_recommendations(session, event.id, me.id)

    ids = [item["user_id"] for item in items]
    assert ids == [str(twin.id), str(peer.id), str(stranger.id)]
    assert str(ghost.id) not in ids
    assert items[0]["score"] == 30 + 20 + 5


def test_baseline_excludes_pairs_with_meetings(session, crowd):
    event, me, twin, *_ = crowd
    meetings.create_meeting(session, event.id, me.id, twin.id)

    ids = [item["user_id"] for item in recommendations.baseline_recommendations(session, event.id, me.id)]

    assert str(twin.id) not in ids


def test_baseline_requires_participation(session, crowd, make_user):
    event, *_ = crowd
    with pytest.raises(ForbiddenError):
        recommendations.baseline_recommendations(session, event.id, make_user().id)


def test_run_matching_replaces_previous_batch(session, crowd):
    event, me, twin, *_ = crowd
    recommendations.upsert_config(session, event.id, max_requests_per_user=1)

    first = recommendations.run_matching(session, event.id)
    second = recommendations.run_matching(session, event.id)

    rows = session.exec(
        select(EventMatchRecommendation).where(EventMatchRecommendation.event_id == event.id)
    ).all()
    assert {row.batch_id for row in rows} == {second["batch_id"]}
    assert first["batch_id"] != second["batch_id"]
    assert len(rows) == second["count"] == 5

    items = recommendations.baseline_recommendations(session, event.id, me.id)
    assert [item["user_id"] for item in items] == [str(twin.id)]


def test_ai_ranking_replaces_baseline(session, crowd):
    event, me, twin, peer, stranger, _ = crowd
    ranker = FakeRanker(
        [
            AIRecommendation(id=str(stranger.id), type="community", reason="Different angle"),
            AIRecommendation(id="not-a-candidate", type="strategic", reason="?"),
            AIRecommendation(id=str(twin.id), type="strategic", reason="Same stack"),
        ]
    )

    result = recommendations.get_recommendations(session, event.id, me.id, ranker)

    assert result["source"] == "ai"
    assert [item["user_id"] for item in result["recommendations"]] == [str(stranger.id), str(twin.id)]
    assert result["recommendations"][0]["summary"] == "Different angle"
    assert result["recommendations"][0]["type"] == "community"
    _, candidates, context = ranker.calls[0]
    assert len(candidates) == 3
    assert context["title"] == event.title


@pytest.mark.parametrize(
    "ranker",
    [FakeRanker(error=UpstreamError("boom")), FakeRanker(result=[])],
    ids=["failure", "empty"],
)
def test_ai_problems_keep_the_baseline(session, crowd, ranker):
    event, me, *_ = crowd

    baseline = recommendations.baseline_recommendations(session, event.id, me.id)
    result = recommendations.get_recommendations(session, event.id, me.id, ranker)

    assert result == {"recommendations": baseline, "source": "baseline"}


def test_config_upsert_merges_weights(session, crowd):
    event, *_ = crowd

    config = recommendations.upsert_config(session, event.id, scoring_weights={"same_role": 50})

    assert config.scoring_weights["same_role"] == 50
    assert config.scoring_weights["same_work_field"] == 30
    assert config.max_requests_per_user == 3
