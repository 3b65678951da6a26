from __future__ import annotations
import json
import uuid
from datetime import datetime
from typing import Any, Dict
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from .db import Base


def _new_id() -> str:
	return uuid.uuid4().hex


class User(Base):
	__tablename__ = "users"
	id = Column(String(32), primary_key=True, default=_new_id)
	name = Column(String(128), nullable=False)
	email = Column(String(256), nullable=False, unique=True, index=True)
	password_hash = Column(String(256), nullable=False)
	role = Column(String(32), default="user", nullable=False)
	avatar = Column(String(512), nullable=True)
	is_active = Column(Boolean, default=True, nullable=False)
	last_login = Column(DateTime, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	def to_dict(self) -> Dict[str, Any]:
		# Never expose the password hash
		return {
			"id": self.id,
			"name": self.name,
			"email": self.email,
			"role": self.role,
			"avatar": self.avatar,
			"is_active": self.is_active,
			"last_login": self.last_login.isoformat() if self.last_login else None,
			"created_at": self.created_at.isoformat() if self.created_at else None,
		}


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# JWT "jti"; deleting the row revokes the token
	session_id = Column(String(64), primary_key=True)
	user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Document(Base):
	__tablename__ = "documents"
	id = Column(String(32), primary_key=True, default=_new_id)
	user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
	title = Column(String(256), nullable=False)
	content = Column(Text, nullable=False, default="")
	# correction, material, communication
	type = Column(String(32), nullable=False, default="correction", index=True)
	# draft, published, archived, saved
	status = Column(String(32), nullable=False, default="draft")
	metadata_json = Column("metadata", Text, nullable=True)  # JSON string
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	corrections = relationship(
		"Correction",
		back_populates="document",
		cascade="all, delete-orphan",
		order_by="Correction.start",
	)

	@property
	def meta(self) -> Dict[str, Any]:
		if not self.metadata_json:
			return {}
		try:
			return json.loads(self.metadata_json)
		except ValueError:
			return {}

	@meta.setter
	def meta(self, value: Dict[str, Any] | None) -> None:
		self.metadata_json = json.dumps(value, ensure_ascii=False) if value is not None else None

	def to_dict(self, *, include_corrections: bool = False) -> Dict[str, Any]:
		data: Dict[str, Any] = {
			"id": self.id,
			"user_id": self.user_id,
			"title": self.title,
			"content": self.content,
			"type": self.type,
			"status": self.status,
			"metadata": self.meta,
			"created_at": self.created_at.isoformat() if self.created_at else None,
			"updated_at": self.updated_at.isoformat() if self.updated_at else None,
		}
		if include_corrections:
			data["corrections"] = [c.to_dict() for c in self.corrections]
		return data


class Correction(Base):
	__tablename__ = "corrections"
	id = Column(String(32), primary_key=True, default=_new_id)
	document_id = Column(String(32), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
	# grammar, spelling, expression
	type = Column(String(32), nullable=False)
	# error, warning, suggestion
	severity = Column(String(32), nullable=False, default="suggestion")
	start = Column(Integer, nullable=False)
	end = Column(Integer, nullable=False)
	comment = Column(Text, nullable=False)
	suggestion = Column(Text, nullable=True)
	applied = Column(Boolean, default=False, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	document = relationship("Document", back_populates="corrections")

	def to_dict(self) -> Dict[str, Any]:
		return {
			"id": self.id,
			"document_id": self.document_id,
			"type": self.type,
			"severity": self.severity,
			"position": {"start": self.start, "end": self.end},
			"comment": self.comment,
			"suggestion": self.suggestion,
			"applied": self.applied,
		}
