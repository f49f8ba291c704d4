from __future__ import annotations
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..breadcrumbs import breadcrumb_labels
from ..db import get_db
from ..models import ROLE_ADMIN, Subject
from ..subject_store import (
	ChapterSpec,
	DuplicateName,
	ItemNotFound,
	OutlineError,
	SubjectStore,
)
from .auth import User, get_current_user, require_roles

router = APIRouter(prefix="/subjects", tags=["subjects"])

require_admin = require_roles(ROLE_ADMIN)


class ChapterIn(BaseModel):
	name: str
	topics: List[str] = Field(default_factory=list)


class SubjectCreate(BaseModel):
	name: str
	chapters: List[ChapterIn] = Field(default_factory=list)


class SubjectUpdate(BaseModel):
	name: Optional[str] = None
	chapters: Optional[List[ChapterIn]] = None


class ChapterUpdate(BaseModel):
	name: str
	# Omitted: topics untouched. Given: the chapter's topics are replaced.
	topics: Optional[List[str]] = None


class TopicIn(BaseModel):
	name: str


class OrderIn(BaseModel):
	order: List[str]


def serialize_subject(subject: Subject) -> Dict[str, Any]:
	return {
		"id": subject.id,
		"name": subject.name,
		"chapters": [
			{
				"id": chapter.id,
				"name": chapter.name,
				"position": chapter.position,
				"topics": [{"id": t.id, "name": t.name, "position": t.position} for t in chapter.topics],
			}
			for chapter in subject.chapters
		],
		"created_at": subject.created_at.isoformat() if subject.created_at else None,
		"updated_at": subject.updated_at.isoformat() if subject.updated_at else None,
	}


def _http_error(err: OutlineError) -> HTTPException:
	if isinstance(err, ItemNotFound):
		return HTTPException(status_code=404, detail=str(err))
	if isinstance(err, DuplicateName):
		return HTTPException(status_code=409, detail=str(err))
	# InvalidName, InvalidOrder
	return HTTPException(status_code=400, detail=str(err))


def _chapter_specs(chapters: List[ChapterIn]) -> List[ChapterSpec]:
	return [(c.name, c.topics) for c in chapters]


def get_store(db: Session = Depends(get_db)) -> SubjectStore:
	return SubjectStore(db)


@router.get("")
def list_subjects(user: User = Depends(get_current_user), store: SubjectStore = Depends(get_store)):
	return [serialize_subject(s) for s in store.list_subjects()]


@router.get("/{subject_id}")
def get_subject(subject_id: str, user: User = Depends(get_current_user), store: SubjectStore = Depends(get_store)):
	try:
		subject = store.get_subject(subject_id)
	except OutlineError as err:
		raise _http_error(err)
	breadcrumb_labels.set_label(f"/subjects/{subject.id}", subject.name)
	return serialize_subject(subject)


@router.post("", status_code=201)
def create_subject(req: SubjectCreate, admin: User = Depends(require_admin), store: SubjectStore = Depends(get_store)):
	try:
		subject = store.create_subject(req.name, _chapter_specs(req.chapters))
	except OutlineError as err:
		raise _http_error(err)
	return {"message": "Subject created successfully", "subject": serialize_subject(subject)}


@router.put("/{subject_id}")
def update_subject(subject_id: str, req: SubjectUpdate, admin: User = Depends(require_admin), store: SubjectStore = Depends(get_store)):
	chapters = _chapter_specs(req.chapters) if req.chapters is not None else None
	try:
		subject = store.update_subject(subject_id, name=req.name, chapters=chapters)
	except OutlineError as err:
		raise _http_error(err)
	return {"message": "Subject updated successfully", "subject": serialize_subject(subject)}


@router.delete("/{subject_id}")
def delete_subject(subject_id: str, admin: User = Depends(require_admin), store: SubjectStore = Depends(get_store)):
	try:
		store.delete_subject(subject_id)
	except OutlineError as err:
		raise _http_error(err)
	breadcrumb_labels.remove(f"/subjects/{subject_id}")
	return {"message": "Subject deleted successfully"}


@router.post("/{subject_id}/chapters")
def add_chapter(subject_id: str, req: ChapterIn, admin: User = Depends(require_admin), store: SubjectStore = Depends(get_store)):
	try:
		subject = store.add_chapter(subject_id, req.name, req.topics)
	except OutlineError as err:
		raise _http_error(err)
	return {"message": "Chapter added successfully", "subject": serialize_subject(subject)}


# Declared before /chapters/{chapter_id} so "order" is not taken for an id
@router.put("/{subject_id}/chapters/order")
def reorder_chapters(subject_id: str, req: OrderIn, admin: User = Depends(require_admin), store: SubjectStore = Depends(get_store)):
	try:
		subject = store.reorder_chapters(subject_id, req.order)
	except OutlineError as err:
		raise _http_error(err)
	return {"message": "Chapters reordered successfully", "subject": serialize_subject(subject)}


@router.put("/{subject_id}/chapters/{chapter_id}")
def rename_chapter(subject_id: str, chapter_id: str, req: ChapterUpdate, admin: User = Depends(require_admin), store: SubjectStore = Depends(get_store)):
	try:
		subject = store.rename_chapter(subject_id, chapter_id, req.name, req.topics)
	except OutlineError as err:
		raise _http_error(err)
	return {"message": "Chapter updated successfully", "subject": serialize_subject(subject)}


@router.delete("/{subject_id}/chapters/{chapter_id}")
def delete_chapter(subject_id: str, chapter_id: str, admin: User = Depends(require_admin), store: SubjectStore = Depends(get_store)):
	try:
		subject = store.delete_chapter(subject_id, chapter_id)
	except OutlineError as err:
		raise _http_error(err)
	return {"message": "Chapter deleted successfully", "subject": serialize_subject(subject)}


@router.post("/{subject_id}/chapters/{chapter_id}/topics")
def add_topic(subject_id: str, chapter_id: str, req: TopicIn, admin: User = Depends(require_admin), store: SubjectStore = Depends(get_store)):
	try:
		subject = store.add_topic(subject_id, chapter_id, req.name)
	except OutlineError as err:
		raise _http_error(err)
	return {"message": "Topic added successfully", "subject": serialize_subject(subject)}


@router.put("/{subject_id}/chapters/{chapter_id}/topics/order")
def reorder_topics(subject_id: str, chapter_id: str, req: OrderIn, admin: User = Depends(require_admin), store: SubjectStore = Depends(get_store)):
	try:
		subject = store.reorder_topics(subject_id, chapter_id, req.order)
	except OutlineError as err:
		raise _http_error(err)
	return {"message": "Topics reordered successfully", "subject": serialize_subject(subject)}


@router.put("/{subject_id}/chapters/{chapter_id}/topics/{topic_id}")
def rename_topic(subject_id: str, chapter_id: str, topic_id: str, req: TopicIn, admin: User = Depends(require_admin), store: SubjectStore = Depends(get_store)):
	try:
		subject = store.rename_topic(subject_id, chapter_id, topic_id, req.name)
	except OutlineError as err:
		raise _http_error(err)
	return {"message": "Topic updated successfully", "subject": serialize_subject(subject)}


@router.delete("/{subject_id}/chapters/{chapter_id}/topics/{topic_id}")
def delete_topic(subject_id: str, chapter_id: str, topic_id: str, admin: User = Depends(require_admin), store: SubjectStore = Depends(get_store)):
	try:
		subject = store.delete_topic(subject_id, chapter_id, topic_id)
	except OutlineError as err:
		raise _http_error(err)
	return {"message": "Topic deleted successfully", "subject": serialize_subject(subject)}
