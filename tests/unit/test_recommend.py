import asyncio
import json

from conftest import FakeLlm

from app.application.recommend_use_case import RecommendUseCase
from app.services.risk_classifier import assess_profile

NO_FLAGS = {"pregnancy": False, "allergies": False, "kidneyLiverIssues": False, "bloodPressureConcerns": False}


def _run(uc, symptoms, medications=(), considerations=None):
    return asyncio.run(uc.run(
        symptoms=list(symptoms),
        medications=list(medications),
        supplements=[],
        considerations=considerations or dict(NO_FLAGS),
        preferences={"preferenceType": "natural"},
    ))


def test_risk_screen():
    assert assess_profile(["tired"], ["Warfarin 5mg"]).blocked
    assert assess_profile(["chest pain at night"], []).blocked
    assert assess_profile(["tired"], [], considerations={"pregnancy": True}).blocked
    soft = assess_profile(["tired"], [], considerations={"allergies": True})
    assert not soft.blocked and len(soft.warnings) == 1


def test_symptoms_required(prompts):
    out = _run(RecommendUseCase(FakeLlm(), prompts), ["  "])
    assert out["error"] == "symptoms_required" and out["disclaimer"]


def test_blocked_profile_never_calls_model(prompts):
    llm = FakeLlm(["{}"])
    out = _run(RecommendUseCase(llm, prompts), ["trouble sleeping"], medications=["warfarin"])
    assert out["blocked"] is True
    assert out["recommendations"] == []
    assert any("warfarin" in w for w in out["warnings"])
    assert out["nextSteps"]
    assert llm.calls == []


def test_defaults_when_model_missing_or_unusable(prompts):
    out = _run(RecommendUseCase(FakeLlm(configured=False), prompts), ["trouble sleeping"])
    assert out["error"] == "k2_api_key_missing" and out["source"] == "default"
    assert len(out["recommendations"]) == 4

    out = _run(RecommendUseCase(FakeLlm(["I cannot help with that."]), prompts), ["trouble sleeping"])
    assert out["source"] == "default" and "error" not in out


def test_model_reply(prompts):
    body = {
        "warnings": ["Take with food"],
        "recommendations": [{"option": "Magnesium", "category": "Supplement"}, {"category": "no option"}],
        "nextSteps": ["Ask about dosing", "Ask about dosing"],
    }
    llm = FakeLlm(["<think>...</think>" + json.dumps(body)])
    out = _run(RecommendUseCase(llm, prompts), ["trouble sleeping"], considerations={**NO_FLAGS, "allergies": True})
    assert out["source"] == "model"
    assert [r["option"] for r in out["recommendations"]] == ["Magnesium"]
    assert out["recommendations"][0]["avoidIf"] == ""
    assert out["nextSteps"] == ["Ask about dosing"]
    assert out["warnings"][-1] == "Take with food" and len(out["warnings"]) == 2
    assert "trouble sleeping" in llm.calls[0]["user"] and "allergies" in llm.calls[0]["user"]
