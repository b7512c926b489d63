from app.domain.severity import Severity, classify_description, to_severity


def test_to_severity_aliases():
    assert to_severity("high") is Severity.SEVERE
    assert to_severity(" Major ") is Severity.SEVERE
    assert to_severity("minor") is Severity.MILD
    assert to_severity("contraindicated") is Severity.CONTRAINDICATED
    assert to_severity("none") is Severity.NONE
    assert to_severity(Severity.MODERATE) is Severity.MODERATE


def test_to_severity_unknown():
    assert to_severity("catastrophic") is None
    assert to_severity("") is None
    assert to_severity(None) is None


def test_classify_description_keywords():
    assert classify_description("Concomitant use is contraindicated.") is Severity.CONTRAINDICATED
    assert classify_description("Avoid combination") is Severity.CONTRAINDICATED
    assert classify_description("May cause serious bleeding") is Severity.SEVERE
    assert classify_description("A moderate increase in exposure") is Severity.MODERATE
    assert classify_description("Minor effect on absorption") is Severity.MILD


def test_classify_description_first_rule_wins_and_default():
    assert classify_description("severe, avoid") is Severity.CONTRAINDICATED
    assert classify_description("may increase the level of x") is Severity.MODERATE
    assert classify_description(None, default=Severity.MILD) is Severity.MILD
