import pytest

from spawnwatch.catalog.reference import CatalogError, ReferenceCatalog, discover_reference_files
from spawnwatch.io.models import ReferenceImage


def test_discover_filters_and_sorts(catalog_dir):
    names = [path.name for path in discover_reference_files(catalog_dir)]
    assert names == ["Blue.jpg", "Broken.png", "Noise.png", "Red.png"]


def test_build_keeps_broken_entries_without_pixels(catalog_dir):
    catalog = ReferenceCatalog.build(catalog_dir, (8, 8), progress=False)

    assert catalog.names() == ["Blue", "Broken", "Noise", "Red"]
    assert len(catalog) == 4
    assert "Broken" in catalog
    assert catalog.get("Broken").pixels is None
    assert [entry.name for entry in catalog.valid_entries()] == ["Blue", "Noise", "Red"]
    assert all(len(entry.pixels) == 8 * 8 * 3 for entry in catalog.valid_entries())


def test_build_accepts_upper_case_extensions(tmp_path, encode_image):
    (tmp_path / "Shiny.PNG").write_bytes(encode_image((1, 1, 1)))
    catalog = ReferenceCatalog.build(tmp_path, (2, 2), progress=False)
    assert catalog.names() == ["Shiny"]


def test_build_missing_directory(tmp_path):
    with pytest.raises(CatalogError):
        ReferenceCatalog.build(tmp_path / "nope", (8, 8), progress=False)


def test_duplicate_names_keep_first():
    catalog = ReferenceCatalog([ReferenceImage("A", b"\x01"), ReferenceImage("A", b"\x02")])
    assert len(catalog) == 1
    assert catalog.get("A").pixels == b"\x01"


def test_empty_directory_builds_empty_catalog(tmp_path):
    catalog = ReferenceCatalog.build(tmp_path, (8, 8), progress=False)
    assert len(catalog) == 0
    assert catalog.valid_entries() == []
