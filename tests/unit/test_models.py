from app.domain.models import Interaction, Product
from app.domain.severity import Severity


def test_product_doc_roundtrip_drops_search_keys():
    p = Product(id=7, name="Vitamin K2 (MK-7)", active_ingredients=["menaquinone-7"])
    doc = p.to_doc()
    assert doc["_id"] == 7 and doc["name_lc"] == "vitamin k2 (mk-7)" and doc["name_key"] == "vitamin k2 mk 7"
    doc["strength"] = None
    back = Product.from_doc(doc)
    assert back == p


def test_interaction_canonical_swaps_endpoints_and_names():
    row = Interaction(product_id_1=9, product_id_2=3, substance_1="nine", substance_2="three")
    c = row.canonical()
    assert (c.product_id_1, c.product_id_2) == (3, 9)
    assert (c.substance_1, c.substance_2) == ("three", "nine")
    assert row.pair == c.pair


def test_interaction_doc_is_canonical_and_maps_source_labels():
    doc = Interaction(product_id_1=5, product_id_2=2, severity=Severity.SEVERE, source_severity="high").to_doc()
    assert doc["product_id_1"] == 2 and doc["product_id_2"] == 5
    assert doc["severity"] == "severe"
    assert doc["origin"] == "stored" and "substance_1" not in doc
    assert doc["created_at"] is not None

    legacy = Interaction.from_doc({"_id": "abc", "product_id_1": 1, "product_id_2": 2, "severity": "high"})
    assert legacy.severity is Severity.SEVERE
    assert legacy.id == "abc" and legacy.origin == "stored"


def test_persisted_prediction_reads_back_as_predicted():
    row = Interaction(product_id_1=3, product_id_2=4, severity=Severity.MILD,
                      evidence_level="predicted", origin="predicted")
    doc = row.to_doc()
    assert doc["origin"] == "predicted"
    assert Interaction.from_doc({"_id": "x", **doc}).origin == "predicted"

    # written before origin was kept on the row
    del doc["origin"]
    assert Interaction.from_doc(doc).origin == "predicted"
