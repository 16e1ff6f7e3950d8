from regadmin.importing.headers import build_column_index
from regadmin.importing.spheres import (
    SphereResolver,
    checkbox_columns,
    collect_sphere_labels,
    resolve_labels,
    slugify,
    split_sphere_labels,
)
from tests.helpers import create_sphere, seed_spheres


def test_slugify():
    assert slugify("Business/Economics") == "businesseconomics"
    assert slugify("Every Nation Campus (ENC)") == "every-nation-campus-enc"
    assert slugify("  Media / Arts ") == "media-arts"


def test_split_sphere_labels():
    assert split_sphere_labels("Business; Education, Government | Media\nChurch or Family") == [
        "Business",
        "Education",
        "Government",
        "Media",
        "Church",
        "Family",
    ]
    assert split_sphere_labels("") == []


def test_resolve_labels_preserves_order_and_dedupes():
    ids = {"business": 5, "education": 2}
    result = resolve_labels(["Business", "business", "Education"], lambda label: ids.get(label.lower()))
    assert result.ids == [5, 2]
    assert result.unresolved == []


def test_resolve_labels_collects_unmatched():
    result = resolve_labels(["Business", "Astronomy"], lambda label: 1 if label == "Business" else None)
    assert result.ids == [1]
    assert result.unresolved == ["Astronomy"]


def test_resolve_labels_same_id_twice():
    result = resolve_labels(["Business/Economics", "Business"], lambda label: 5)
    assert result.ids == [5]


def test_checkbox_block_yields_ticked_labels_only():
    headers = build_column_index(
        {
            "A": "Last Name",
            "B": "Vocation/Work Sphere - Business/Economics",
            "C": "Vocation/Work Sphere - Church/Ministry",
        }
    )
    columns = checkbox_columns(headers)
    assert columns == [("B", "Business/Economics"), ("C", "Church/Ministry")]

    labels = collect_sphere_labels("", {"A": "Doe", "B": "x", "C": ""}, columns)
    assert labels == ["Business/Economics"]


def test_free_text_wins_over_checkboxes():
    columns = [("B", "Business/Economics")]
    labels = collect_sphere_labels("Education", {"B": "x"}, columns)
    assert labels == ["Education"]


def test_sphere_resolver_slug_then_name(db_session):
    spheres = seed_spheres(db_session)
    odd = create_sphere(db_session, "Arts & Culture")
    resolver = SphereResolver(db_session)

    assert resolver.lookup("business/economics") == spheres["Business/Economics"].id
    assert resolver.lookup("EVERY NATION CAMPUS (ENC)") == spheres["Every Nation Campus (ENC)"].id
    assert resolver.lookup("arts & culture") == odd.id
    assert resolver.lookup("Astronomy") is None

    result = resolver.resolve(["Education", "Government", "education"])
    assert result.ids == [spheres["Education"].id, spheres["Government"].id]
