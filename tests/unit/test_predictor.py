import asyncio

from conftest import FakeInteractionRepo, FakeLlm, reply_json

from app.application.predict_use_case import InteractionPredictor, all_pairs
from app.domain.models import SubstanceDescriptor
from app.domain.severity import Severity


def _d(name, pid=None):
    return SubstanceDescriptor(name=name, kind="product" if pid else "ingredient", product_id=pid)


def test_all_pairs_in_input_order_without_self_pairs():
    ds = [_d("a", 1), _d("b", 2), _d("A ", None), _d("c", 3)]
    names = [(x.name, y.name) for x, y in all_pairs(ds)]
    assert names == [("a", "b"), ("a", "c"), ("b", "A "), ("b", "c"), ("A ", "c")]


def test_predicted_row_carries_provenance(prompts):
    llm = FakeLlm([reply_json(severity="high", description="Adds bleeding risk.", mechanism="antiplatelet")])
    row = asyncio.run(InteractionPredictor(llm, prompts).predict_pair(_d("Aspirin", 3), _d("Fish Oil", 4)))
    assert row is not None
    assert row.severity is Severity.SEVERE and row.source_severity == "high"
    assert row.origin == "predicted" and row.evidence_level == "predicted"
    assert row.sources == ["test-model"]
    assert row.notes.startswith("Predicted by test-model")
    assert (row.substance_1, row.substance_2) == ("Aspirin", "Fish Oil")
    assert "Product 1: Aspirin" in llm.calls[0]["user"]


def test_failures_yield_nothing_for_that_pair_only(prompts):
    llm = FakeLlm([
        reply_json(severity="mild"),
        TimeoutError("model timed out"),
        "not json at all",
        reply_json(has_interaction=False, severity="none"),
        reply_json(severity="catastrophic"),
        '{"severity": "mild"}',
        reply_json(severity="moderate"),
    ])
    ds = [_d(f"s{i}") for i in range(7)]
    pairs = [(ds[i], ds[i + 1]) for i in range(6)] + [(ds[0], ds[6])]
    rows = asyncio.run(InteractionPredictor(llm, prompts).predict_pairs(pairs))
    assert [(r.substance_1, r.substance_2) for r in rows] == [("s0", "s1"), ("s0", "s6")]
    assert len(llm.calls) == 7


def test_unconfigured_model_is_never_called(prompts):
    llm = FakeLlm([reply_json()], configured=False)
    p = InteractionPredictor(llm, prompts)
    assert not p.enabled
    assert asyncio.run(p.predict_all([_d("a"), _d("b")])) == []
    assert llm.calls == []


def test_persist_stores_once_and_only_product_pairs(prompts):
    repo = FakeInteractionRepo()
    llm = FakeLlm([reply_json(severity="moderate"), reply_json(severity="moderate"), reply_json(severity="mild")])
    p = InteractionPredictor(llm, prompts, repo, persist=True)

    first = asyncio.run(p.predict_pair(_d("Metformin", 6), _d("Aspirin", 3)))
    assert first.id is not None
    assert (first.product_id_1, first.product_id_2) == (6, 3)
    assert len(repo.rows) == 1

    again = asyncio.run(p.predict_pair(_d("Metformin", 6), _d("Aspirin", 3)))
    assert again.id is None and len(repo.rows) == 1

    asyncio.run(p.predict_pair(_d("Metformin", 6), _d("turmeric")))
    assert len(repo.rows) == 1


def test_no_interaction_is_not_persisted(prompts):
    repo = FakeInteractionRepo()
    llm = FakeLlm([reply_json(has_interaction=True, severity="none")])
    p = InteractionPredictor(llm, prompts, repo, persist=True)
    assert asyncio.run(p.predict_pair(_d("a", 1), _d("b", 2))) is None
    assert repo.rows == {}
