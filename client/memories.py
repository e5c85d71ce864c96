"""
Программа: «Фотогалерея» – веб-приложение для хранения и просмотра фотографий.
Модуль: client/memories.py – лента воспоминаний.

Назначение модуля:
- Группировка фотографий по календарному дню (локальное время).
- Заголовок воспоминания по преобладающей категории дня.
- Выбор до четырёх фотографий для превью, равномерно по времени.
- Необязательная генерация короткой истории через /api/generate-story.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime

from client.api_client import GalleryAPIError
from client.photo import Photo, month_ago, to_local

logger = logging.getLogger(__name__)

REPRESENTATIVE_LIMIT = 4
LARGE_MEMORY_THRESHOLD = 10

CATEGORY_TITLES = {
    "family": "Family Time",
    "friends": "Friends Gathering",
    "travel": "Travel Adventure",
    "food": "Culinary Moments",
    "pets": "Pet Memories",
    "nature": "Nature Discovery",
    "celebration": "Special Event",
    "selfies": "Personal Moments",
    "work": "Work Day",
    "shopping": "Shopping Trip",
}


@dataclass
class Memory:
    """Фотографии одного дня. Не сохраняется, строится заново при каждой загрузке."""

    id: str
    date: date
    title: str
    photos: list[Photo]
    representative_photos: list[Photo]
    categories: list[str]
    primary_category: str
    story: str | None = None
    is_story_generated: bool = False
    photo_count: int = field(init=False, default=0)

    def __post_init__(self):
        self.photo_count = len(self.photos)

    def to_payload(self) -> dict:
        """Сведения о воспоминании для тела запроса генерации истории."""
        return {
            "date": self.date.isoformat(),
            "category": self.primary_category,
            "photoCount": self.photo_count,
            "categories": list(self.categories),
        }


def _format_day(day: date) -> str:
    return f"{day:%B} {day.day}"


def group_photos_by_date(photos: list[Photo]) -> dict[date, list[Photo]]:
    """Группирует фотографии по локальной дате загрузки, сохраняя порядок внутри дня."""
    groups: dict[date, list[Photo]] = {}
    for photo in photos:
        groups.setdefault(to_local(photo.upload_date).date(), []).append(photo)
    return groups


def dominant_category(photos: list[Photo]) -> str:
    """Самая частая категория; при равенстве побеждает встреченная первой."""
    counts = Counter(photo.category for photo in photos)
    if not counts:
        return "other"
    return counts.most_common(1)[0][0]


def memory_title(day: date, photos: list[Photo], primary_category: str) -> str:
    label = _format_day(day)
    if len(photos) <= 1:
        return f"Single Moment - {label}"

    base = f"{CATEGORY_TITLES.get(primary_category, 'Photo Memory')} - {label}"
    if len(photos) > LARGE_MEMORY_THRESHOLD:
        return f"{base} ({len(photos)} photos)"
    return base


def select_representative_photos(photos: list[Photo], limit: int = REPRESENTATIVE_LIMIT) -> list[Photo]:
    """До `limit` фотографий, равномерно распределённых по времени, включая первую и последнюю."""
    if len(photos) <= limit:
        return list(photos)
    ordered = sorted(photos, key=lambda p: to_local(p.upload_date))
    if limit == 1:
        return [ordered[0]]

    last = len(ordered) - 1
    return [ordered[round(i * last / (limit - 1))] for i in range(limit)]


def build_memory(day: date, photos: list[Photo]) -> Memory:
    primary = dominant_category(photos)
    return Memory(
        id=f"memory_{day.isoformat()}",
        date=day,
        title=memory_title(day, photos, primary),
        photos=photos,
        representative_photos=select_representative_photos(photos),
        categories=list(dict.fromkeys(photo.category for photo in photos)),
        primary_category=primary,
    )


def build_memories(photos: list[Photo]) -> list[Memory]:
    """Воспоминания, от новых к старым."""
    memories = [build_memory(day, day_photos) for day, day_photos in group_photos_by_date(photos).items()]
    memories.sort(key=lambda memory: memory.date, reverse=True)
    return memories


def filter_memories(memories: list[Memory], kind: str = "all", now: datetime | None = None) -> list[Memory]:
    """Фильтр ленты: all, recent (за последний месяц) или имя категории."""
    if not kind or kind == "all":
        return list(memories)
    if kind == "recent":
        since = month_ago(now or datetime.now()).date()
        return [memory for memory in memories if memory.date >= since]
    return [memory for memory in memories if memory.primary_category == kind]


def build_story_prompt(memory: Memory) -> str:
    day = memory.date
    date_str = f"{day:%A, %B} {day.day}, {day.year}"
    plural = "s" if memory.photo_count > 1 else ""
    return (
        f"Create a warm, personal story (2-3 sentences) about a photo memory from {date_str}. "
        f"The memory contains {memory.photo_count} photo{plural} "
        f'primarily categorized as "{memory.primary_category}". '
        f"Categories present: {', '.join(memory.categories)}. "
        "Make it feel like a journal entry that captures the emotion and significance of that day. "
        'Use second person ("you") to make it personal. Keep it authentic and heartwarming. '
        "Don't mention technical details about photos or cameras."
    )


class MemoriesTimeline:
    """Лента воспоминаний текущего пользователя."""

    def __init__(self, client):
        self.client = client
        self.memories: list[Memory] = []

    def load(self) -> list[Memory]:
        photos = self.client.list_photos()
        self.memories = build_memories(photos)
        logger.info("Найдено воспоминаний: %d", len(self.memories))
        return self.memories

    def get_memory(self, memory_id: str) -> Memory | None:
        for memory in self.memories:
            if memory.id == memory_id:
                return memory
        return None

    def filter(self, kind: str = "all", now: datetime | None = None) -> list[Memory]:
        return filter_memories(self.memories, kind, now)

    def generate_story(self, memory_id: str) -> str | None:
        """Запрашивает историю для воспоминания.

        Ошибка сервера не считается фатальной: она записывается в лог,
        воспоминание остаётся без истории и функция возвращает None.
        """
        memory = self.get_memory(memory_id)
        if memory is None:
            return None
        if memory.is_story_generated:
            return memory.story

        try:
            story = self.client.generate_story(build_story_prompt(memory), memory.to_payload())
        except GalleryAPIError as exc:
            logger.warning("Не удалось создать историю для %s: %s", memory_id, exc.message)
            return None

        memory.story = story
        memory.is_story_generated = True
        return story
