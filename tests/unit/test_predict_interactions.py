import asyncio

from conftest import FakeInteractionRepo, FakeLlm, reply_json

from app.application.predict_interactions_use_case import PredictInteractionsUseCase
from app.application.predict_use_case import InteractionPredictor
from app.application.resolve_use_case import CatalogResolver


def _uc(catalog, prompts, llm, repo=None, persist=False):
    predictor = InteractionPredictor(llm, prompts, repo, persist=persist)
    return PredictInteractionsUseCase(CatalogResolver(catalog), predictor, max_items=4)


def test_input_checks(catalog, prompts):
    uc = _uc(catalog, prompts, FakeLlm())
    assert asyncio.run(uc.run(["Aspirin"]))["error"] == "at_least_two_items_required"
    assert asyncio.run(uc.run(["a", "b", "c", "d", "e"]))["error"] == "too_many_items"
    off = _uc(catalog, prompts, FakeLlm(configured=False))
    assert asyncio.run(off.run(["Aspirin", "Warfarin"]))["error"] == "k2_api_key_missing"


def test_no_interaction_twice_leaves_store_untouched(catalog, prompts):
    repo = FakeInteractionRepo()
    none = reply_json(has_interaction=False, severity="none")
    uc = _uc(catalog, prompts, FakeLlm([none, none]), repo, persist=True)
    assert asyncio.run(uc.run(["Aspirin", "Metformin"])) == {"interactions": []}
    assert asyncio.run(uc.run(["Aspirin", "Metformin"])) == {"interactions": []}
    assert repo.rows == {}


def test_timeout_drops_only_that_pair(catalog, prompts):
    llm = FakeLlm([reply_json(severity="mild"), TimeoutError(), reply_json(severity="moderate")])
    out = asyncio.run(_uc(catalog, prompts, llm).run(["Aspirin", "Fish Oil", "ginger"]))
    pairs = [(r.substance_1, r.substance_2) for r in out["interactions"]]
    assert pairs == [("Aspirin", "Fish Oil"), ("Fish Oil", "ginger")]


def test_catalog_down_predicts_on_raw_names(catalog, prompts):
    catalog.down = True
    llm = FakeLlm([reply_json(severity="mild")])
    out = asyncio.run(_uc(catalog, prompts, llm).run(["Aspirin", "Warfarin"]))
    assert len(out["interactions"]) == 1
    assert out["interactions"][0].product_id_1 is None
    assert "Type: ingredient" in llm.calls[0]["user"]
