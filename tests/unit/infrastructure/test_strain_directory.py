import json

from growcare.infrastructure.strain_directory import JsonStrainDirectory


def test_bundled_catalog_is_indexed_by_id():
    directory = JsonStrainDirectory()
    assert len(directory) == 6
    assert directory.lookup("sour-diesel")["type"] == "sativa"
    assert directory.lookup("durban-poison")["floweringTime"] == 9
    assert directory.lookup("unknown-kush") is None


def test_missing_file_gives_empty_catalog(tmp_path):
    directory = JsonStrainDirectory(tmp_path / "absent.json")
    assert len(directory) == 0
    assert directory.lookup("blue-dream") is None


def test_invalid_json_gives_empty_catalog(tmp_path):
    path = tmp_path / "strains.json"
    path.write_text("{not json", encoding="utf-8")
    assert len(JsonStrainDirectory(path)) == 0


def test_wrong_shape_and_entries_without_id(tmp_path):
    path = tmp_path / "strains.json"
    path.write_text(json.dumps([{"id": "x"}]), encoding="utf-8")
    assert len(JsonStrainDirectory(path)) == 0

    path.write_text(json.dumps({"strains": [{"name": "Nameless"}, "junk", {"id": 7, "type": "cbd"}]}), encoding="utf-8")
    directory = JsonStrainDirectory(path)
    assert len(directory) == 1
    assert directory.lookup(7)["type"] == "cbd"


def test_reload_picks_up_changes(tmp_path):
    path = tmp_path / "strains.json"
    path.write_text(json.dumps({"strains": [{"id": "a", "type": "indica"}]}), encoding="utf-8")
    directory = JsonStrainDirectory(path)
    assert len(directory) == 1

    path.write_text(
        json.dumps({"strains": [{"id": "a", "type": "sativa"}, {"id": "b", "type": "hybrid"}]}),
        encoding="utf-8",
    )
    assert directory.reload() == 2
    assert directory.lookup("a")["type"] == "sativa"
