"""
Модуль: `utils/cleanup.py`.
Назначение: Очистка изображений, на которые не ссылается ни одна живая фотография.
"""

from flask import current_app

from models.photo import Photo


def purge_orphan_blobs() -> int:
    """Выполняет операцию `purge_orphan_blobs` в рамках сценария модуля."""
    blob_cache = current_app.extensions["blob_cache"]
    live_keys = {
        key for (key,) in Photo.query.with_entities(Photo.image_key).filter_by(archived=False).all()
    }

    removed = 0
    for key in blob_cache.keys():
        if key in live_keys:
            continue
        if blob_cache.evict(key):
            removed += 1

    if removed:
        current_app.logger.info("Удалено изображений без фотографий: %s", removed)
    return removed
