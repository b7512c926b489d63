from app.domain.normalizer import normalize_name


def test_normalize_name_collapses_punctuation():
    assert normalize_name("  Vitamin K2 (MK-7) ") == "vitamin k2 mk 7"
    assert normalize_name("St. John's Wort") == "st john s wort"


def test_normalize_name_blank_is_empty():
    assert normalize_name("") == ""
    assert normalize_name("   ") == ""
    assert normalize_name("()--") == ""
    assert normalize_name(None) == ""


def test_normalize_name_idempotent():
    for raw in ["Fish Oil 1000mg", "  ASPIRIN  ", "omega-3/6/9", "Ginkgo_Biloba"]:
        once = normalize_name(raw)
        assert normalize_name(once) == once
