from datetime import date, datetime

import pytest
from sqlalchemy import inspect, text

from extensions import db
from models.photo import Photo
from utils import photo_store


@pytest.fixture
def user_id(app):
    with app.app_context():
        return photo_store.create_user("carol", "carol@example.com", "hash").id


def test_record_defaults_for_sparse_photo(app):
    with app.app_context():
        photo = Photo(id=7, user_id=1, image_key="", file_name="", original_name="", mime_type="")
        record = photo_store.photo_to_record(photo)

    assert record["fileName"] == "Untitled"
    assert record["originalName"] == "unknown"
    assert record["category"] == "other"
    assert record["type"] == "image/jpeg"
    assert record["size"] == 0
    assert record["width"] == 0
    assert record["tags"] == []
    assert record["thumbnail"] == ""
    assert record["uploadDate"].endswith("Z")


def test_create_photo_applies_defaults(app, user_id):
    with app.app_context():
        photo = photo_store.create_photo(user_id, {"size": "oops", "tags": None}, "photo_key_1")
        assert photo.file_name == "Untitled Photo"
        assert photo.original_name == "Untitled Photo"
        assert photo.category == "other"
        assert photo.size == 0
        assert photo.tags == []


def test_normalize_category():
    assert photo_store.normalize_category("Family") == "family"
    assert photo_store.normalize_category("") == "other"
    assert photo_store.normalize_category(None) == "other"
    assert photo_store.normalize_category("x" * 80) == "x" * 50


def test_normalize_tags():
    assert photo_store.normalize_tags([" edited ", "edited", "", "shared"]) == ["edited", "shared"]
    with pytest.raises(ValueError):
        photo_store.normalize_tags("edited")
    with pytest.raises(ValueError):
        photo_store.normalize_tags(["edited", 3])


def test_parse_upload_date():
    assert photo_store.parse_upload_date("2026-10-17T12:30:00Z") == datetime(2026, 10, 17, 12, 30)
    assert photo_store.parse_upload_date("2026-10-17T12:30:00+02:00") == datetime(2026, 10, 17, 10, 30)

    before = datetime.utcnow()
    assert photo_store.parse_upload_date("yesterday") >= before
    assert photo_store.parse_upload_date(None) >= before


def test_archived_photos_excluded(app, user_id):
    with app.app_context():
        kept = photo_store.create_photo(user_id, {"fileName": "kept"}, "photo_kept")
        gone = photo_store.create_photo(user_id, {"fileName": "gone"}, "photo_gone")
        photo_store.archive_photo(gone)

        assert [photo.id for photo in photo_store.list_photos(user_id)] == [kept.id]
        assert photo_store.get_photo(user_id, gone.id) is None
        assert photo_store.get_photo(user_id + 1, kept.id) is None


def test_find_user_and_touch_login(app, user_id):
    with app.app_context():
        found = photo_store.find_user_by_login("carol")
        assert found.id == user_id
        assert photo_store.get_user(str(user_id)).id == user_id
        assert photo_store.get_user("abc") is None

        photo_store.touch_last_login(found)
        assert found.last_login is not None
        assert photo_store.username_or_email_taken("someone", "carol@example.com")
        assert not photo_store.username_or_email_taken("someone", "someone@example.com")


def test_stale_photo_table_is_renamed(app):
    with app.app_context():
        with db.engine.begin() as conn:
            conn.execute(text("DROP TABLE photo"))
            conn.execute(text("CREATE TABLE photo (id INTEGER PRIMARY KEY, file_name VARCHAR(255))"))
            conn.execute(text("CREATE INDEX ix_photo_file_name ON photo (file_name)"))
            conn.execute(text("INSERT INTO photo (id, file_name) VALUES (1, 'legacy')"))

        renamed = photo_store.ensure_schema()

        expected = f"photo_old_{date.today():%Y%m%d}"
        assert renamed == [expected]

        inspector = inspect(db.engine)
        tables = set(inspector.get_table_names())
        assert expected in tables
        assert "image_key" in {column["name"] for column in inspector.get_columns("photo")}

        with db.engine.connect() as conn:
            assert conn.execute(text(f'SELECT file_name FROM "{expected}"')).scalar() == "legacy"

        assert photo_store.ensure_schema() == []


def test_current_schema_left_alone(app):
    with app.app_context():
        assert photo_store.ensure_schema() == []
