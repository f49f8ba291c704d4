from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship
from .db import Base


ROLE_ADMIN = "admin"
ROLE_TEACHER = "teacher"
ROLE_STUDENT = "student"
ROLES = (ROLE_ADMIN, ROLE_TEACHER, ROLE_STUDENT)


def _new_id() -> str:
	return uuid.uuid4().hex


class AuthUser(Base):
	__tablename__ = "auth_users"
	# Primary key is username
	username = Column(String(128), primary_key=True, index=True)
	password_hash = Column(String(256), nullable=False)
	email = Column(String(256), nullable=True)
	role = Column(String(16), default=ROLE_STUDENT, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# jti of the issued token
	session_id = Column(String(64), primary_key=True)
	username = Column(String(128), nullable=False, index=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Subject(Base):
	__tablename__ = "subjects"
	id = Column(String(32), primary_key=True, default=_new_id)
	name = Column(String(256), unique=True, nullable=False, index=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	# position is renumbered 0..n-1 by the ordering list on every mutation
	chapters = relationship(
		"Chapter",
		back_populates="subject",
		order_by="Chapter.position",
		collection_class=ordering_list("position"),
		cascade="all, delete-orphan",
	)


class Chapter(Base):
	__tablename__ = "chapters"
	id = Column(String(32), primary_key=True, default=_new_id)
	subject_id = Column(String(32), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
	position = Column(Integer, nullable=False, default=0)
	name = Column(String(256), nullable=False)

	subject = relationship("Subject", back_populates="chapters")
	topics = relationship(
		"Topic",
		back_populates="chapter",
		order_by="Topic.position",
		collection_class=ordering_list("position"),
		cascade="all, delete-orphan",
	)


class Topic(Base):
	__tablename__ = "topics"
	id = Column(String(32), primary_key=True, default=_new_id)
	chapter_id = Column(String(32), ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True)
	position = Column(Integer, nullable=False, default=0)
	name = Column(String(256), nullable=False)

	chapter = relationship("Chapter", back_populates="topics")
