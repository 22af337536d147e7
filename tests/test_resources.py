import pytest

from store.errors import ValidationError
from store.models import Resource, iso_timestamp, to_base36
from store.resources import (
    CategoryPatch,
    ChangeSet,
    ProductPatch,
    apply_changes,
    merge_content,
    normalize_subcategories,
    replace_content,
    slugify,
    slugify_trimmed,
    sort_by_order,
)

from conftest import FIXED_MS

TS = "2024-05-01T10:00:00.000Z"


def test_iso_timestamp_has_millisecond_precision():
    assert iso_timestamp(FIXED_MS) == TS
    assert iso_timestamp(FIXED_MS + 123) == "2024-05-01T10:00:00.123Z"


def test_slugify_matches_category_id_rules():
    assert slugify("Silk Sarees") == "silk-sarees"
    assert slugify("  Kanjivaram & Co ") == "-kanjivaram-co-"
    assert slugify_trimmed("  Kanjivaram & Co ") == "kanjivaram-co"


def test_patch_rejects_unknown_fields_and_wrong_types():
    with pytest.raises(ValidationError, match="Unknown field 'colour'"):
        ProductPatch.from_dict({"colour": "red"}, Resource.PRODUCTS)
    with pytest.raises(ValidationError, match="wrong type"):
        CategoryPatch.from_dict({"order": "1"}, Resource.CATEGORIES)
    with pytest.raises(ValidationError):
        CategoryPatch.from_dict({"order": True}, Resource.CATEGORIES)


def test_patch_ignores_server_owned_keys():
    patch = ProductPatch.from_dict({"id": "x", "createdAt": "then", "name": "Silk"}, Resource.PRODUCTS)
    assert patch.to_dict() == {"name": "Silk"}


def test_create_product_generates_id_and_created_at(id_generator):
    records, changed = apply_changes(
        Resource.PRODUCTS, [], ChangeSet(create=[{"name": "Silk", "price": "500"}]), ids=id_generator, timestamp=TS
    )

    assert changed
    assert len(records) == 1
    record = records[0]
    assert record["id"].startswith(str(FIXED_MS))
    assert len(record["id"]) == len(str(FIXED_MS)) + 9
    assert {k: v for k, v in record.items() if k != "id"} == {"name": "Silk", "price": "500", "createdAt": TS}


def test_update_overrides_present_fields_and_keeps_the_rest(id_generator):
    stored = [{"id": "p1", "name": "Silk", "price": "500", "createdAt": "old"}]

    records, changed = apply_changes(
        Resource.PRODUCTS, stored, ChangeSet(update=[{"id": "p1", "price": "650"}]), ids=id_generator, timestamp=TS
    )

    assert changed
    assert records == [{"id": "p1", "name": "Silk", "price": "650", "createdAt": "old", "updatedAt": TS}]
    assert stored[0]["price"] == "500"


def test_merge_is_idempotent(id_generator):
    stored = [{"id": "p1", "name": "Silk", "price": "500"}]
    changes = ChangeSet(update=[{"id": "p1", "name": "Silk Saree"}])

    once, _ = apply_changes(Resource.PRODUCTS, stored, changes, ids=id_generator, timestamp=TS)
    twice, changed = apply_changes(Resource.PRODUCTS, once, changes, ids=id_generator, timestamp=TS)

    assert twice == once
    assert not changed


def test_update_for_unknown_id_is_skipped(id_generator):
    stored = [{"id": "p1", "name": "Silk"}]
    records, changed = apply_changes(
        Resource.PRODUCTS, stored, ChangeSet(update=[{"id": "nope", "name": "x"}]), ids=id_generator
    )
    assert records == stored
    assert not changed


def test_updates_apply_before_creates_and_deletes_apply_last(id_generator):
    stored = [{"id": "silk", "name": "Silk", "order": 1}]
    changes = ChangeSet(
        create=[{"name": "Cotton"}],
        update=[{"id": "silk", "name": "Pure Silk"}],
        delete=["silk"],
    )

    records, _ = apply_changes(Resource.CATEGORIES, stored, changes, ids=id_generator, timestamp=TS)

    assert records == [{"id": "cotton", "name": "Cotton", "order": 2, "createdAt": TS}]


def test_temporary_ids_are_never_deleted(id_generator):
    stored = [{"id": "temp_123_1", "name": "odd but persisted"}]
    records, changed = apply_changes(
        Resource.PRODUCTS, stored, ChangeSet(delete=["temp_123_1"]), ids=id_generator
    )
    assert records == stored
    assert not changed


def test_category_rename_keeps_id_and_duplicate_create_is_rejected(id_generator):
    stored = [{"id": "silk", "name": "Silk", "order": 1}]

    renamed, _ = apply_changes(
        Resource.CATEGORIES, stored, ChangeSet(update=[{"id": "silk", "name": "Silks"}]), ids=id_generator, timestamp=TS
    )
    assert renamed[0]["id"] == "silk"
    assert renamed[0]["name"] == "Silks"

    with pytest.raises(ValidationError, match="already exists"):
        apply_changes(Resource.CATEGORIES, stored, ChangeSet(create=[{"name": "SILK"}]), ids=id_generator)


def test_hero_ids_are_sequential(id_generator):
    records, _ = apply_changes(
        Resource.HERO,
        [],
        ChangeSet(create=[{"image": "a.jpg"}, {"image": "b.jpg", "alt": "B"}]),
        ids=id_generator,
        timestamp=TS,
    )
    assert [r["id"] for r in records] == [str(FIXED_MS), str(FIXED_MS + 1)]
    with pytest.raises(ValidationError, match="image"):
        apply_changes(Resource.HERO, [], ChangeSet(create=[{"alt": "no image"}]), ids=id_generator)


def test_collection_create_normalizes_subcategories(id_generator):
    records, _ = apply_changes(
        Resource.COLLECTIONS,
        [],
        ChangeSet(create=[{"id": "temp_1_1", "name": "Wedding Wear", "subcategories": [{"name": " Bridal "}]}]),
        ids=id_generator,
        timestamp=TS,
    )
    assert records == [{
        "id": f"wedding-wear-{to_base36(FIXED_MS)}",
        "name": "Wedding Wear",
        "order": 1,
        "subcategories": [{"id": "bridal", "name": "Bridal", "order": 1}],
        "createdAt": TS,
    }]


def test_normalize_subcategories_requires_names():
    with pytest.raises(ValidationError):
        normalize_subcategories([{"name": "  "}])


def test_sort_by_order_treats_missing_order_as_zero():
    records = [{"id": "b", "order": 2}, {"id": "a"}, {"id": "c", "order": 1}]
    assert [r["id"] for r in sort_by_order(records)] == ["a", "c", "b"]


def test_change_set_validates_shape():
    with pytest.raises(ValidationError):
        ChangeSet.from_dict({"create": {"name": "x"}}, Resource.PRODUCTS)
    with pytest.raises(ValidationError):
        ChangeSet.from_dict({"upsert": []}, Resource.PRODUCTS)
    with pytest.raises(ValidationError):
        ChangeSet.from_dict({"delete": [1]}, Resource.PRODUCTS)
    changes = ChangeSet.from_dict({"delete": ["a"]}, Resource.PRODUCTS)
    assert changes.count() == 1 and not changes.is_empty()


def test_content_replace_and_merge():
    current = {"siteName": "ShreeAdvaya", "email": "a@b.c"}

    replaced, changed = replace_content(current, {"siteName": "ShreeAdvaya"})
    assert replaced == {"siteName": "ShreeAdvaya"}
    assert changed

    same, changed = replace_content(current, dict(current))
    assert same == current
    assert not changed

    merged = merge_content(current, {"phone": "123"}, TS)
    assert merged == {"siteName": "ShreeAdvaya", "email": "a@b.c", "phone": "123", "updatedAt": TS}
