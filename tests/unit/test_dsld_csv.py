import asyncio
import csv

from conftest import FakeCatalogRepo

from ingestion.dsld_csv import PRODUCTS, SUPPLEMENT_FACTS, find_files, ingest_directory, map_row


def _write(path, headers, rows):
    with open(path, "w", newline="", encoding="utf-8-sig") as f:
        w = csv.writer(f)
        w.writerow(headers)
        w.writerows(rows)


def _dump(tmp_path):
    _write(tmp_path / "ProductOverview_1.csv",
           ["DSLD ID", "Product Name", "Brand Name", "Serving Size", "Supplement Form [LanguaL]", "Market Status"],
           [["11", "Magnesium Glycinate", "Acme", "2 tablets", "Tablet", "On Market"],
            ["12", "Zinc 50", "Acme", "1 tablet", "Tablet", "Off Market"],
            ["", "", "", "", "", ""]])
    _write(tmp_path / "ProductOverview_2.csv",
           ["DSLD ID", "Product Name", "Brand Name"],
           [["13", "Magnesium Glycinate", "Other Brand"]])
    _write(tmp_path / "DietarySupplementFacts_1.csv",
           ["DSLD ID", "Product Name", "Ingredient", "Amount Per Serving", "Amount Per Serving Unit"],
           [["11", "Magnesium Glycinate", "Magnesium", "200", "mg"],
            ["12", "Zinc 50", "Zinc", "50", "mg"]])
    _write(tmp_path / "LabelStatements_1.csv",
           ["DSLD ID", "Statement Type", "Statement"],
           [["11", "Precautions", "Keep out of reach of children."]])


def test_map_row_keeps_known_headers():
    row = map_row(SUPPLEMENT_FACTS, {"DSLD ID": " 42 ", "Ingredient": " Zinc ", "Unknown": "x"})
    assert row["dsld_id"] == 42 and row["ingredient"] == "Zinc"
    assert "Unknown" not in row and row["amount_unit"] is None


def test_find_files_numeric_order(tmp_path):
    for n in (10, 2, 1):
        (tmp_path / f"ProductOverview_{n}.csv").write_text("x\n")
    (tmp_path / "notes.txt").write_text("x")
    assert [p.name for p in find_files(tmp_path, PRODUCTS.prefix)] == [
        "ProductOverview_1.csv", "ProductOverview_2.csv", "ProductOverview_10.csv",
    ]


def test_load_is_idempotent(tmp_path):
    _dump(tmp_path)
    catalog = FakeCatalogRepo()

    first = asyncio.run(ingest_directory(catalog, tmp_path, batch_size=1))
    # duplicate product name in the second file is skipped
    assert first.loaded == 2 + 2 + 1 and first.skipped == 1 and first.errors == 0
    mag = next(p for p in catalog.products.values() if p.name == "Magnesium Glycinate")
    assert mag.dsld_id == 11 and mag.brand_names == ["Acme"] and mag.serving_size == "2 tablets"
    assert mag.active_ingredients == ["Magnesium"]

    writes = catalog.writes
    second = asyncio.run(ingest_directory(catalog, tmp_path, batch_size=1000))
    assert second.loaded == 0 and second.skipped == 6
    assert catalog.writes == writes
    assert mag.active_ingredients == catalog.products[mag.id].active_ingredients


def test_table_filter_and_store_errors(tmp_path):
    _dump(tmp_path)
    catalog = FakeCatalogRepo()
    stats = asyncio.run(ingest_directory(catalog, tmp_path, tables=["label_statements"]))
    assert stats.loaded == 1 and catalog.products == {}

    catalog.down = True
    stats = asyncio.run(ingest_directory(catalog, tmp_path, tables=["supplement_facts"]))
    assert stats.errors == 2 and stats.loaded == 0


def test_undecodable_file_is_counted_and_skipped(tmp_path):
    (tmp_path / "ProductOverview_1.csv").write_bytes(b"DSLD ID,Product Name\r\n12,Magn\xe9sium\r\n")
    _write(tmp_path / "ProductOverview_2.csv", ["DSLD ID", "Product Name"], [["13", "Zinc 50"]])
    catalog = FakeCatalogRepo()
    stats = asyncio.run(ingest_directory(catalog, tmp_path, tables=["products"]))
    assert stats.errors == 1 and stats.loaded == 1
    assert [p.name for p in catalog.products.values()] == ["Zinc 50"]
