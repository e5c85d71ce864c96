from datetime import datetime, timedelta, timezone

import pytest

from client.api_client import GalleryAPIError
from client.gallery import PhotoGallery
from client.photo import Photo

NOW = datetime(2026, 10, 17, 12, 0)


def photo(photo_id, name, days_ago=0, size=100, category="other", tags=()):
    return Photo(
        id=photo_id,
        file_name=f"1700000000000_{name}",
        original_name=name,
        category=category,
        size=size,
        upload_date=NOW - timedelta(days=days_ago),
        tags=list(tags),
    )


class FakeClient:
    def __init__(self, photos, failing=()):
        self.photos = photos
        self.failing = set(failing)
        self.deleted = []
        self.updates = []

    def list_photos(self):
        return list(self.photos)

    def delete_photo(self, photo_id):
        if photo_id in self.failing:
            raise GalleryAPIError(500, "Failed to delete photo")
        self.deleted.append(photo_id)

    def update_photo(self, photo_id, **changes):
        self.updates.append((photo_id, changes))

    def download_photo(self, photo_id):
        if photo_id in self.failing:
            raise GalleryAPIError(404, "Photo not found")
        return "same.png", f"bytes-{photo_id}".encode()


@pytest.fixture
def gallery():
    photos = [
        photo(1, "beach.png", days_ago=0, size=300, category="travel", tags=["favorite"]),
        photo(2, "Cat.png", days_ago=3, size=100, category="pets"),
        photo(3, "dinner.png", days_ago=40, size=200, category="food"),
        photo(4, "alps.png", days_ago=400, size=50, category="travel"),
    ]
    gallery = PhotoGallery(FakeClient(photos))
    gallery.load()
    return gallery


def ids(photos):
    return [p.id for p in photos]


def test_default_sort_is_newest_first(gallery):
    assert ids(gallery.visible_photos(NOW)) == [1, 2, 3, 4]


@pytest.mark.parametrize(
    "sort, expected",
    [
        ("date-asc", [4, 3, 2, 1]),
        ("name-asc", [4, 1, 2, 3]),
        ("name-desc", [3, 2, 1, 4]),
        ("size-desc", [1, 3, 2, 4]),
        ("size-asc", [4, 2, 3, 1]),
    ],
)
def test_sorting(gallery, sort, expected):
    gallery.set_sort(sort)
    assert ids(gallery.visible_photos(NOW)) == expected


def test_unknown_sort_rejected(gallery):
    with pytest.raises(ValueError):
        gallery.set_sort("colour")


def test_search_matches_name_tags_and_category(gallery):
    gallery.set_search("CAT")
    assert ids(gallery.visible_photos(NOW)) == [2]

    gallery.set_search("favorite")
    assert ids(gallery.visible_photos(NOW)) == [1]

    gallery.set_search("travel")
    assert ids(gallery.visible_photos(NOW)) == [1, 4]


def test_category_filter(gallery):
    gallery.set_category("travel")
    assert ids(gallery.visible_photos(NOW)) == [1, 4]
    gallery.set_category("all")
    assert len(gallery.visible_photos(NOW)) == 4


@pytest.mark.parametrize(
    "kind, expected",
    [("today", [1]), ("week", [1, 2]), ("month", [1, 2]), ("year", [1, 2, 3]), ("all", [1, 2, 3, 4])],
)
def test_date_filters(gallery, kind, expected):
    gallery.set_date_filter(kind)
    assert ids(gallery.visible_photos(NOW)) == expected


def test_date_range(gallery):
    gallery.set_date_range(NOW - timedelta(days=50), NOW - timedelta(days=1))
    assert ids(gallery.visible_photos(NOW)) == [2, 3]

    with pytest.raises(ValueError):
        gallery.set_date_range(NOW, NOW - timedelta(days=1))


def test_aware_and_naive_dates_compare(gallery):
    gallery.photos.append(photo(5, "aware.png"))
    gallery.photos[-1].upload_date = (NOW - timedelta(days=2)).astimezone(timezone.utc)
    gallery.set_date_filter("week")
    assert 5 in ids(gallery.visible_photos(NOW))


def test_filters_do_not_mutate_source(gallery):
    original = ids(gallery.photos)
    gallery.set_search("beach")
    gallery.set_sort("size-asc")
    gallery.visible_photos(NOW)
    assert ids(gallery.photos) == original

    gallery.clear_filters()
    gallery.set_sort("date-desc")
    assert ids(gallery.visible_photos(NOW)) == [1, 2, 3, 4]


def test_selection_survives_filtering(gallery):
    assert gallery.toggle_selection(2) is True
    assert gallery.toggle_selection(3) is True

    gallery.set_category("travel")
    assert ids(gallery.visible_photos(NOW)) == [1, 4]
    assert gallery.selected_ids() == [2, 3]
    assert gallery.visible_selected_ids(NOW) == []

    gallery.clear_filters()
    assert gallery.visible_selected_ids(NOW) == [2, 3]

    assert gallery.toggle_selection(3) is False
    assert gallery.selected_ids() == [2]


def test_select_all_visible_toggles(gallery):
    gallery.set_category("travel")
    assert gallery.select_all_visible(NOW) == 2
    assert gallery.selected_ids() == [1, 4]

    gallery.select_all_visible(NOW)
    assert gallery.selected_ids() == []


def test_bulk_delete_partial_success():
    photos = [photo(1, "a.png"), photo(2, "b.png"), photo(3, "c.png")]
    client = FakeClient(photos, failing={2})
    gallery = PhotoGallery(client)
    gallery.load()
    for photo_id in (1, 2, 3):
        gallery.toggle_selection(photo_id)

    result = gallery.bulk_delete()

    assert result.succeeded == [1, 3]
    assert result.failed == {2: "Failed to delete photo"}
    assert result.partial
    assert client.deleted == [1, 3]
    assert ids(gallery.photos) == [2]
    assert gallery.selected_ids() == [2]


def test_bulk_export_avoids_name_collisions(tmp_path):
    photos = [photo(1, "a.png"), photo(2, "b.png"), photo(3, "c.png")]
    gallery = PhotoGallery(FakeClient(photos, failing={3}))
    gallery.load()
    gallery.select_all_visible(NOW)

    result = gallery.bulk_export(str(tmp_path))

    assert result.succeeded == [1, 2]
    assert list(result.failed) == [3]
    assert (tmp_path / "same.png").read_bytes() == b"bytes-1"
    assert (tmp_path / "same (1).png").read_bytes() == b"bytes-2"


def test_rename_photo(gallery):
    renamed = gallery.rename_photo(2, "  Sleepy cat ")
    assert renamed.original_name == "Sleepy cat"
    assert gallery.client.updates == [(2, {"file_name": "Sleepy cat"})]

    with pytest.raises(ValueError):
        gallery.rename_photo(2, "   ")


def test_add_photo_goes_first(gallery):
    gallery.add_photo(photo(9, "new.png"))
    assert gallery.photos[0].id == 9


def test_summaries(gallery):
    gallery.toggle_selection(1)
    assert gallery.category_summary()[0] == ("travel", 2)
    assert gallery.stats() == {"total": 4, "total_size": 650, "categories": 3, "selected": 1}
