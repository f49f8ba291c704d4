"""Ordered item list editor for a subject's chapters and topics.

The editor holds only transient UI state: which chapter or topic is in
inline-rename mode, which chapters are expanded and the drag offset of the
item being dragged. Every persisted mutation is forwarded to an
``OutlineHandlers`` implementation (the owning store) addressed by stable ids.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Set, Tuple

ENTER = "Enter"
ESCAPE = "Escape"

# dnd-kit's default sortable transition
DEFAULT_TRANSITION = "transform 250ms ease"


class OutlineError(ValueError):
	pass


class ItemNotFound(OutlineError):
	pass


class InvalidOrder(OutlineError):
	pass


@dataclass(frozen=True)
class TopicItem:
	id: str
	name: str


@dataclass(frozen=True)
class ChapterItem:
	id: str
	name: str
	topics: Tuple[TopicItem, ...] = ()

	@property
	def topic_names(self) -> List[str]:
		return [t.name for t in self.topics]

	def topic(self, topic_id: str) -> Optional[TopicItem]:
		idx = index_of(self.topics, topic_id)
		return self.topics[idx] if idx != -1 else None


@dataclass(frozen=True)
class SubjectOutline:
	id: str
	name: str
	chapters: Tuple[ChapterItem, ...] = ()

	def chapter(self, chapter_id: str) -> Optional[ChapterItem]:
		idx = index_of(self.chapters, chapter_id)
		return self.chapters[idx] if idx != -1 else None


def index_of(items: Sequence[Any], item_id: str) -> int:
	for idx, item in enumerate(items):
		if item.id == item_id:
			return idx
	return -1


def move_item(items: Sequence[Any], active_id: str, over_id: str) -> List[Any]:
	"""Move the item ``active_id`` to the slot currently held by ``over_id``.

	Unknown ids, or dropping an item on itself, leave the order unchanged.
	"""
	result = list(items)
	old_index = index_of(result, active_id)
	new_index = index_of(result, over_id)
	if old_index == -1 or new_index == -1 or old_index == new_index:
		return result
	result.insert(new_index, result.pop(old_index))
	return result


def apply_order(items: Sequence[Any], order: Sequence[str]) -> List[Any]:
	"""Return ``items`` rearranged to follow ``order``, a permutation of their ids."""
	by_id = {item.id: item for item in items}
	if len(order) != len(by_id) or set(order) != set(by_id):
		raise InvalidOrder("order must list every item id exactly once")
	return [by_id[item_id] for item_id in order]


@dataclass(frozen=True)
class Transform:
	x: float = 0
	y: float = 0
	scale_x: float = 1
	scale_y: float = 1


def css_transform(transform: Optional[Transform]) -> Optional[str]:
	if transform is None:
		return None
	return (
		f"translate3d({transform.x:g}px, {transform.y:g}px, 0) "
		f"scaleX({transform.scale_x:g}) scaleY({transform.scale_y:g})"
	)


def topic_count_label(count: int) -> str:
	return f"{count} topic{'s' if count != 1 else ''}"


@dataclass
class ChapterEditCursor:
	chapter_id: str
	draft: str


@dataclass
class TopicEditCursor:
	chapter_id: str
	topic_id: str
	draft: str


class OutlineHandlers(Protocol):
	def rename_chapter(self, subject_id: str, chapter_id: str, name: str, topics: Optional[Sequence[str]] = None) -> Any: ...

	def delete_chapter(self, subject_id: str, chapter_id: str) -> Any: ...

	def reorder_chapters(self, subject_id: str, order: Sequence[str]) -> Any: ...

	def rename_topic(self, subject_id: str, chapter_id: str, topic_id: str, name: str) -> Any: ...

	def delete_topic(self, subject_id: str, chapter_id: str, topic_id: str) -> Any: ...

	def reorder_topics(self, subject_id: str, chapter_id: str, order: Sequence[str]) -> Any: ...


@dataclass
class TopicRowProps:
	subject_id: str
	chapter_id: str
	chapter_index: int
	topic: TopicItem
	topic_index: int
	editing_topic: Optional[TopicEditCursor]
	editing_value: str
	on_change_value: Callable[[str], None]
	on_save: Callable[[str, str, str], Any]
	on_cancel: Callable[[], None]
	on_start_edit: Callable[[str, str, str], None]
	on_delete: Callable[[str, str, str], Any]
	transform: Optional[Transform] = None
	transition: Optional[str] = None


class TopicRow:
	def __init__(self, props: TopicRowProps) -> None:
		self.props = props

	@property
	def id(self) -> str:
		return self.props.topic.id

	@property
	def is_editing(self) -> bool:
		# Topic ids are only compared within their chapter
		cursor = self.props.editing_topic
		return (
			cursor is not None
			and cursor.chapter_id == self.props.chapter_id
			and cursor.topic_id == self.props.topic.id
		)

	def type(self, text: str) -> None:
		if self.is_editing:
			self.props.on_change_value(text)

	def handle_key(self, key: str) -> None:
		if not self.is_editing:
			return
		if key == ENTER:
			self.save()
		elif key == ESCAPE:
			self.cancel()

	def save(self) -> Any:
		p = self.props
		return p.on_save(p.subject_id, p.chapter_id, p.topic.id)

	def cancel(self) -> None:
		self.props.on_cancel()

	def start_edit(self) -> None:
		p = self.props
		p.on_start_edit(p.chapter_id, p.topic.id, p.topic.name)

	def delete(self) -> Any:
		p = self.props
		return p.on_delete(p.subject_id, p.chapter_id, p.topic.id)

	def style(self) -> Dict[str, Optional[str]]:
		return {"transform": css_transform(self.props.transform), "transition": self.props.transition}

	def render(self) -> Dict[str, Any]:
		view: Dict[str, Any] = {
			"id": self.id,
			"index": self.props.topic_index,
			"name": self.props.topic.name,
			"editing": self.is_editing,
			"style": self.style(),
		}
		if self.is_editing:
			view["draft"] = self.props.editing_value
		return view


@dataclass
class ChapterRowProps:
	subject_id: str
	chapter: ChapterItem
	chapter_index: int
	editing_chapter_id: Optional[str]
	editing_value: str
	on_change_value: Callable[[str], None]
	on_save: Callable[[str, str, List[str]], Any]
	on_cancel: Callable[[], None]
	on_toggle_expand: Callable[[str, str], None]
	on_start_edit: Callable[[str, str], None]
	on_delete: Callable[[str, str], Any]
	transform: Optional[Transform] = None
	transition: Optional[str] = None
	expanded: bool = False
	children: List[TopicRow] = field(default_factory=list)


class ChapterRow:
	def __init__(self, props: ChapterRowProps) -> None:
		self.props = props

	@property
	def id(self) -> str:
		return self.props.chapter.id

	@property
	def is_editing(self) -> bool:
		return self.props.editing_chapter_id == self.props.chapter.id

	def type(self, text: str) -> None:
		if self.is_editing:
			self.props.on_change_value(text)

	def handle_key(self, key: str) -> None:
		if not self.is_editing:
			return
		if key == ENTER:
			self.save()
		elif key == ESCAPE:
			self.cancel()

	def save(self) -> Any:
		p = self.props
		# Topics go back unchanged so a rename never disturbs them
		return p.on_save(p.subject_id, p.chapter.id, p.chapter.topic_names)

	def cancel(self) -> None:
		self.props.on_cancel()

	def start_edit(self) -> None:
		self.props.on_start_edit(self.props.chapter.id, self.props.chapter.name)

	def toggle_expand(self) -> None:
		self.props.on_toggle_expand(self.props.subject_id, self.props.chapter.id)

	def delete(self) -> Any:
		return self.props.on_delete(self.props.subject_id, self.props.chapter.id)

	def style(self) -> Dict[str, Optional[str]]:
		return {"transform": css_transform(self.props.transform), "transition": self.props.transition}

	def render(self) -> Dict[str, Any]:
		chapter = self.props.chapter
		view: Dict[str, Any] = {
			"id": chapter.id,
			"index": self.props.chapter_index,
			"name": chapter.name,
			"topic_count_label": topic_count_label(len(chapter.topics)),
			"editing": self.is_editing,
			"expanded": self.props.expanded,
			"style": self.style(),
		}
		if self.is_editing:
			view["draft"] = self.props.editing_value
		if self.props.expanded:
			view["topics"] = [row.render() for row in self.props.children]
		return view


class OutlineEditor:
	"""Transient editing state over one subject's outline.

	``loader`` (usually ``SubjectStore.outline``) is called after each
	persisted mutation so the rows are rebuilt from the current snapshot.
	"""

	def __init__(
		self,
		outline: SubjectOutline,
		handlers: OutlineHandlers,
		*,
		loader: Optional[Callable[[str], SubjectOutline]] = None,
	) -> None:
		self.outline = outline
		self.handlers = handlers
		self.loader = loader
		self.chapter_cursor: Optional[ChapterEditCursor] = None
		self.topic_cursor: Optional[TopicEditCursor] = None
		self.expanded: Set[str] = set()
		self._transforms: Dict[str, Transform] = {}

	@classmethod
	def for_store(cls, store: Any, subject_id: str) -> "OutlineEditor":
		return cls(store.outline(subject_id), store, loader=store.outline)

	@property
	def subject_id(self) -> str:
		return self.outline.id

	def refresh(self, outline: Optional[SubjectOutline] = None) -> None:
		if outline is None:
			if self.loader is None:
				return
			outline = self.loader(self.outline.id)
		self.outline = outline
		# Drop cursors and view state that point at items which no longer exist
		if self.chapter_cursor is not None and outline.chapter(self.chapter_cursor.chapter_id) is None:
			self.chapter_cursor = None
		if self.topic_cursor is not None:
			chapter = outline.chapter(self.topic_cursor.chapter_id)
			if chapter is None or chapter.topic(self.topic_cursor.topic_id) is None:
				self.topic_cursor = None
		self.expanded = {cid for cid in self.expanded if outline.chapter(cid) is not None}
		live_ids = {c.id for c in outline.chapters} | {t.id for c in outline.chapters for t in c.topics}
		self._transforms = {k: v for k, v in self._transforms.items() if k in live_ids}

	def _require_chapter(self, chapter_id: str) -> ChapterItem:
		chapter = self.outline.chapter(chapter_id)
		if chapter is None:
			raise ItemNotFound(f"chapter {chapter_id} not found")
		return chapter

	def _require_topic(self, chapter_id: str, topic_id: str) -> TopicItem:
		topic = self._require_chapter(chapter_id).topic(topic_id)
		if topic is None:
			raise ItemNotFound(f"topic {topic_id} not found")
		return topic

	def chapter_index(self, chapter_id: str) -> int:
		return index_of(self.outline.chapters, chapter_id)

	def topic_index(self, chapter_id: str, topic_id: str) -> int:
		chapter = self.outline.chapter(chapter_id)
		return index_of(chapter.topics, topic_id) if chapter is not None else -1

	# ---- chapters ----

	def begin_chapter_edit(self, chapter_id: str, name: Optional[str] = None) -> None:
		chapter = self._require_chapter(chapter_id)
		self.chapter_cursor = ChapterEditCursor(chapter_id, chapter.name if name is None else name)

	def set_chapter_draft(self, text: str) -> None:
		if self.chapter_cursor is not None:
			self.chapter_cursor.draft = text

	def cancel_chapter_edit(self) -> None:
		self.chapter_cursor = None

	def commit_chapter_edit(self) -> bool:
		if self.chapter_cursor is None:
			return False
		chapter_id = self.chapter_cursor.chapter_id
		return self._save_chapter(self.subject_id, chapter_id, self._require_chapter(chapter_id).topic_names)

	def _save_chapter(self, subject_id: str, chapter_id: str, topics: Sequence[str]) -> bool:
		cursor = self.chapter_cursor
		if cursor is None or cursor.chapter_id != chapter_id:
			return False
		name = cursor.draft.strip()
		if not name:
			return False
		# Topics come from the current snapshot; a row built earlier may carry a stale list
		current = self._require_chapter(chapter_id).topic_names
		self.handlers.rename_chapter(subject_id, chapter_id, name, current)
		self.chapter_cursor = None
		self.refresh()
		return True

	def delete_chapter(self, chapter_id: str) -> None:
		self._require_chapter(chapter_id)
		self.handlers.delete_chapter(self.subject_id, chapter_id)
		if self.chapter_cursor is not None and self.chapter_cursor.chapter_id == chapter_id:
			self.chapter_cursor = None
		if self.topic_cursor is not None and self.topic_cursor.chapter_id == chapter_id:
			self.topic_cursor = None
		self.expanded.discard(chapter_id)
		self.refresh()

	def toggle_expand(self, chapter_id: str) -> bool:
		self._require_chapter(chapter_id)
		if chapter_id in self.expanded:
			self.expanded.discard(chapter_id)
			return False
		self.expanded.add(chapter_id)
		return True

	def drop_chapter(self, active_id: str, over_id: str) -> bool:
		self._transforms.pop(active_id, None)
		current = list(self.outline.chapters)
		reordered = move_item(current, active_id, over_id)
		if reordered == current:
			return False
		self.handlers.reorder_chapters(self.subject_id, [c.id for c in reordered])
		self.refresh()
		return True

	# ---- topics ----

	def begin_topic_edit(self, chapter_id: str, topic_id: str, name: Optional[str] = None) -> None:
		topic = self._require_topic(chapter_id, topic_id)
		self.topic_cursor = TopicEditCursor(chapter_id, topic_id, topic.name if name is None else name)

	def set_topic_draft(self, text: str) -> None:
		if self.topic_cursor is not None:
			self.topic_cursor.draft = text

	def cancel_topic_edit(self) -> None:
		self.topic_cursor = None

	def commit_topic_edit(self) -> bool:
		if self.topic_cursor is None:
			return False
		return self._save_topic(self.subject_id, self.topic_cursor.chapter_id, self.topic_cursor.topic_id)

	def _save_topic(self, subject_id: str, chapter_id: str, topic_id: str) -> bool:
		cursor = self.topic_cursor
		if cursor is None or cursor.chapter_id != chapter_id or cursor.topic_id != topic_id:
			return False
		name = cursor.draft.strip()
		if not name:
			return False
		self._require_topic(chapter_id, topic_id)
		self.handlers.rename_topic(subject_id, chapter_id, topic_id, name)
		self.topic_cursor = None
		self.refresh()
		return True

	def delete_topic(self, chapter_id: str, topic_id: str) -> None:
		self._require_topic(chapter_id, topic_id)
		self.handlers.delete_topic(self.subject_id, chapter_id, topic_id)
		cursor = self.topic_cursor
		if cursor is not None and cursor.chapter_id == chapter_id and cursor.topic_id == topic_id:
			self.topic_cursor = None
		self.refresh()

	def drop_topic(self, chapter_id: str, active_id: str, over_id: str) -> bool:
		self._transforms.pop(active_id, None)
		current = list(self._require_chapter(chapter_id).topics)
		reordered = move_item(current, active_id, over_id)
		if reordered == current:
			return False
		self.handlers.reorder_topics(self.subject_id, chapter_id, [t.id for t in reordered])
		self.refresh()
		return True

	# ---- drag gesture ----

	def drag_move(self, item_id: str, transform: Transform) -> None:
		self._transforms[item_id] = transform

	def drag_cancel(self, item_id: str) -> None:
		self._transforms.pop(item_id, None)

	# ---- rows ----

	def _on_start_chapter_edit(self, chapter_id: str, name: str) -> None:
		self.begin_chapter_edit(chapter_id, name)

	def _on_toggle_expand(self, subject_id: str, chapter_id: str) -> None:
		self.toggle_expand(chapter_id)

	def _on_delete_chapter(self, subject_id: str, chapter_id: str) -> None:
		self.delete_chapter(chapter_id)

	def _on_start_topic_edit(self, chapter_id: str, topic_id: str, name: str) -> None:
		self.begin_topic_edit(chapter_id, topic_id, name)

	def _on_delete_topic(self, subject_id: str, chapter_id: str, topic_id: str) -> None:
		self.delete_topic(chapter_id, topic_id)

	def _transition(self, item_id: str) -> Optional[str]:
		return DEFAULT_TRANSITION if item_id in self._transforms else None

	def topic_rows(self, chapter_id: str) -> List[TopicRow]:
		chapter = self._require_chapter(chapter_id)
		chapter_index = self.chapter_index(chapter_id)
		cursor = self.topic_cursor
		rows = []
		for topic_index, topic in enumerate(chapter.topics):
			rows.append(TopicRow(TopicRowProps(
				subject_id=self.subject_id,
				chapter_id=chapter.id,
				chapter_index=chapter_index,
				topic=topic,
				topic_index=topic_index,
				editing_topic=cursor,
				editing_value=cursor.draft if cursor is not None else "",
				on_change_value=self.set_topic_draft,
				on_save=self._save_topic,
				on_cancel=self.cancel_topic_edit,
				on_start_edit=self._on_start_topic_edit,
				on_delete=self._on_delete_topic,
				transform=self._transforms.get(topic.id),
				transition=self._transition(topic.id),
			)))
		return rows

	def chapter_rows(self) -> List[ChapterRow]:
		cursor = self.chapter_cursor
		rows = []
		for chapter_index, chapter in enumerate(self.outline.chapters):
			expanded = chapter.id in self.expanded
			rows.append(ChapterRow(ChapterRowProps(
				subject_id=self.subject_id,
				chapter=chapter,
				chapter_index=chapter_index,
				editing_chapter_id=cursor.chapter_id if cursor is not None else None,
				editing_value=cursor.draft if cursor is not None else "",
				on_change_value=self.set_chapter_draft,
				on_save=self._save_chapter,
				on_cancel=self.cancel_chapter_edit,
				on_toggle_expand=self._on_toggle_expand,
				on_start_edit=self._on_start_chapter_edit,
				on_delete=self._on_delete_chapter,
				transform=self._transforms.get(chapter.id),
				transition=self._transition(chapter.id),
				expanded=expanded,
				children=self.topic_rows(chapter.id) if expanded else [],
			)))
		return rows

	def chapter_row(self, chapter_id: str) -> ChapterRow:
		for row in self.chapter_rows():
			if row.id == chapter_id:
				return row
		raise ItemNotFound(f"chapter {chapter_id} not found")

	def topic_row(self, chapter_id: str, topic_id: str) -> TopicRow:
		for row in self.topic_rows(chapter_id):
			if row.id == topic_id:
				return row
		raise ItemNotFound(f"topic {topic_id} not found")

	def render(self) -> Dict[str, Any]:
		return {
			"subject": {"id": self.outline.id, "name": self.outline.name},
			"chapters": [row.render() for row in self.chapter_rows()],
		}
