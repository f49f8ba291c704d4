from __future__ import annotations
import logging
import uuid
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from .models import Chapter, Subject, Topic
from .outline import (
	ChapterItem,
	InvalidOrder,
	ItemNotFound,
	OutlineError,
	SubjectOutline,
	TopicItem,
	apply_order,
	index_of,
)

logger = logging.getLogger(__name__)

# (chapter name, topic names)
ChapterSpec = Tuple[str, Sequence[str]]


class SubjectNotFound(ItemNotFound):
	pass


class DuplicateName(OutlineError):
	pass


class InvalidName(OutlineError):
	pass


def _clean(name: Optional[str], what: str) -> str:
	value = (name or "").strip()
	if not value:
		raise InvalidName(f"{what} name is required")
	return value


def _clean_topics(topics: Iterable[str]) -> List[str]:
	cleaned: List[str] = []
	for topic in topics:
		value = _clean(topic, "Topic")
		if value in cleaned:
			raise DuplicateName("Topic with this name already exists in this chapter")
		cleaned.append(value)
	return cleaned


def _clean_chapters(chapters: Iterable[ChapterSpec]) -> List[Tuple[str, List[str]]]:
	cleaned: List[Tuple[str, List[str]]] = []
	seen: List[str] = []
	for name, topics in chapters:
		chapter_name = _clean(name, "Chapter")
		if chapter_name in seen:
			raise DuplicateName("Chapter with this name already exists")
		seen.append(chapter_name)
		cleaned.append((chapter_name, _clean_topics(topics)))
	return cleaned


class SubjectStore:
	"""Owns the persisted subject outlines.

	Chapters and topics are addressed by id; their position is looked up in the
	current collection when a call arrives, so callers never pass indices.
	"""

	def __init__(self, db: Session) -> None:
		self.db = db

	# ---- subjects ----

	def list_subjects(self) -> List[Subject]:
		return self.db.query(Subject).order_by(Subject.name).all()

	def get_subject(self, subject_id: str) -> Subject:
		subject = self.db.get(Subject, subject_id)
		if subject is None:
			raise SubjectNotFound("Subject not found")
		return subject

	def _ensure_unique_subject(self, name: str, exclude_id: Optional[str] = None) -> None:
		query = self.db.query(Subject).filter(Subject.name == name)
		if exclude_id is not None:
			query = query.filter(Subject.id != exclude_id)
		if query.first() is not None:
			raise DuplicateName("Subject with this name already exists")

	def _build_chapters(self, chapters: Sequence[ChapterSpec]) -> List[Chapter]:
		built: List[Chapter] = []
		for name, topics in _clean_chapters(chapters):
			chapter = Chapter(id=uuid.uuid4().hex, name=name)
			for topic_name in topics:
				chapter.topics.append(Topic(id=uuid.uuid4().hex, name=topic_name))
			built.append(chapter)
		return built

	def _merge_chapters(self, subject: Subject, chapters: Sequence[ChapterSpec]) -> None:
		# Chapters and topics matched by name keep their ids
		cleaned = _clean_chapters(chapters)
		names = [name for name, _ in cleaned]
		existing = {c.name: c for c in subject.chapters}
		for chapter in list(subject.chapters):
			if chapter.name not in names:
				subject.chapters.remove(chapter)
		for position, (name, topics) in enumerate(cleaned):
			chapter = existing.get(name)
			if chapter is None:
				chapter = Chapter(id=uuid.uuid4().hex, name=name)
				subject.chapters.append(chapter)
			self._replace_topics(chapter, topics)
			chapter.position = position

	def _commit(self, subject: Subject) -> Subject:
		subject.updated_at = datetime.utcnow()
		self.db.commit()
		self.db.refresh(subject)
		return subject

	def create_subject(self, name: str, chapters: Sequence[ChapterSpec] = ()) -> Subject:
		subject_name = _clean(name, "Subject")
		self._ensure_unique_subject(subject_name)
		subject = Subject(id=uuid.uuid4().hex, name=subject_name)
		for chapter in self._build_chapters(chapters):
			subject.chapters.append(chapter)
		self.db.add(subject)
		self.db.commit()
		self.db.refresh(subject)
		logger.info("Created subject %s (%s)", subject.name, subject.id)
		return subject

	def update_subject(
		self,
		subject_id: str,
		name: Optional[str] = None,
		chapters: Optional[Sequence[ChapterSpec]] = None,
	) -> Subject:
		subject = self.get_subject(subject_id)
		if name is not None and name.strip():
			subject_name = name.strip()
			self._ensure_unique_subject(subject_name, exclude_id=subject.id)
			subject.name = subject_name
		if chapters is None:
			return self._commit(subject)
		self._merge_chapters(subject, chapters)
		subject = self._commit(subject)
		# Reload so the collections follow the new positions
		for chapter in subject.chapters:
			self.db.expire(chapter, ["topics"])
		self.db.expire(subject, ["chapters"])
		return subject

	def delete_subject(self, subject_id: str) -> None:
		subject = self.get_subject(subject_id)
		self.db.delete(subject)
		self.db.commit()
		logger.info("Deleted subject %s", subject_id)

	# ---- chapters ----

	def _chapter(self, subject: Subject, chapter_id: str) -> Chapter:
		idx = index_of(subject.chapters, chapter_id)
		if idx == -1:
			raise ItemNotFound("Chapter not found")
		return subject.chapters[idx]

	def _ensure_unique_chapter(self, subject: Subject, name: str, exclude_id: Optional[str] = None) -> None:
		for chapter in subject.chapters:
			if chapter.name == name and chapter.id != exclude_id:
				raise DuplicateName("Chapter with this name already exists")

	def _replace_topics(self, chapter: Chapter, topics: Sequence[str]) -> None:
		# Keep the ids of topics whose names survive the replace
		names = _clean_topics(topics)
		existing = {t.name: t for t in chapter.topics}
		for topic in list(chapter.topics):
			if topic.name not in names:
				chapter.topics.remove(topic)
		for position, name in enumerate(names):
			topic = existing.get(name)
			if topic is None:
				topic = Topic(id=uuid.uuid4().hex, name=name)
				chapter.topics.append(topic)
			topic.position = position

	def add_chapter(self, subject_id: str, name: str, topics: Sequence[str] = ()) -> Subject:
		subject = self.get_subject(subject_id)
		chapter_name = _clean(name, "Chapter")
		self._ensure_unique_chapter(subject, chapter_name)
		chapter = Chapter(id=uuid.uuid4().hex, name=chapter_name)
		for topic_name in _clean_topics(topics):
			chapter.topics.append(Topic(id=uuid.uuid4().hex, name=topic_name))
		subject.chapters.append(chapter)
		return self._commit(subject)

	def rename_chapter(
		self,
		subject_id: str,
		chapter_id: str,
		name: str,
		topics: Optional[Sequence[str]] = None,
	) -> Subject:
		subject = self.get_subject(subject_id)
		chapter = self._chapter(subject, chapter_id)
		chapter_name = _clean(name, "Chapter")
		self._ensure_unique_chapter(subject, chapter_name, exclude_id=chapter.id)
		chapter.name = chapter_name
		if topics is not None:
			self._replace_topics(chapter, topics)
		return self._commit(subject)

	def delete_chapter(self, subject_id: str, chapter_id: str) -> Subject:
		subject = self.get_subject(subject_id)
		idx = index_of(subject.chapters, chapter_id)
		if idx == -1:
			raise ItemNotFound("Chapter not found")
		subject.chapters.pop(idx)
		subject.chapters.reorder()
		logger.info("Subject %s: deleted chapter %s at position %d", subject_id, chapter_id, idx)
		return self._commit(subject)

	def reorder_chapters(self, subject_id: str, order: Sequence[str]) -> Subject:
		subject = self.get_subject(subject_id)
		reordered = apply_order(subject.chapters, order)
		for position, chapter in enumerate(reordered):
			chapter.position = position
		subject = self._commit(subject)
		# Reload so the collection follows the new positions
		self.db.expire(subject, ["chapters"])
		return subject

	# ---- topics ----

	def _topic(self, chapter: Chapter, topic_id: str) -> Topic:
		idx = index_of(chapter.topics, topic_id)
		if idx == -1:
			raise ItemNotFound("Topic not found")
		return chapter.topics[idx]

	def _ensure_unique_topic(self, chapter: Chapter, name: str, exclude_id: Optional[str] = None) -> None:
		for topic in chapter.topics:
			if topic.name == name and topic.id != exclude_id:
				raise DuplicateName("Topic with this name already exists in this chapter")

	def add_topic(self, subject_id: str, chapter_id: str, name: str) -> Subject:
		subject = self.get_subject(subject_id)
		chapter = self._chapter(subject, chapter_id)
		topic_name = _clean(name, "Topic")
		self._ensure_unique_topic(chapter, topic_name)
		chapter.topics.append(Topic(id=uuid.uuid4().hex, name=topic_name))
		return self._commit(subject)

	def rename_topic(self, subject_id: str, chapter_id: str, topic_id: str, name: str) -> Subject:
		subject = self.get_subject(subject_id)
		chapter = self._chapter(subject, chapter_id)
		topic = self._topic(chapter, topic_id)
		topic_name = _clean(name, "Topic")
		self._ensure_unique_topic(chapter, topic_name, exclude_id=topic.id)
		topic.name = topic_name
		return self._commit(subject)

	def delete_topic(self, subject_id: str, chapter_id: str, topic_id: str) -> Subject:
		subject = self.get_subject(subject_id)
		chapter = self._chapter(subject, chapter_id)
		idx = index_of(chapter.topics, topic_id)
		if idx == -1:
			raise ItemNotFound("Topic not found")
		chapter.topics.pop(idx)
		chapter.topics.reorder()
		return self._commit(subject)

	def reorder_topics(self, subject_id: str, chapter_id: str, order: Sequence[str]) -> Subject:
		subject = self.get_subject(subject_id)
		chapter = self._chapter(subject, chapter_id)
		reordered = apply_order(chapter.topics, order)
		for position, topic in enumerate(reordered):
			topic.position = position
		subject = self._commit(subject)
		self.db.expire(chapter, ["topics"])
		return subject

	# ---- snapshots ----

	def outline(self, subject_id: str) -> SubjectOutline:
		subject = self.get_subject(subject_id)
		return SubjectOutline(
			id=subject.id,
			name=subject.name,
			chapters=tuple(
				ChapterItem(
					id=chapter.id,
					name=chapter.name,
					topics=tuple(TopicItem(id=t.id, name=t.name) for t in chapter.topics),
				)
				for chapter in subject.chapters
			),
		)


__all__ = [
	"ChapterSpec",
	"DuplicateName",
	"InvalidName",
	"InvalidOrder",
	"ItemNotFound",
	"OutlineError",
	"SubjectNotFound",
	"SubjectStore",
]
