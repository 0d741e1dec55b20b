"""Persistence layer for simulated credit sections.

Each visitor works on an ordered list of credit sections. A section holds
the free-text description the visitor typed, the raw reply of the extraction
service and the result computed from it when it was saved. The share button
reads the raw replies back from here. Defaults to SQLite for local
development, but accepts any SQLAlchemy-compatible URL.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine, func, select
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


class CreditSectionModel(Base):
    __tablename__ = "credit_sections"

    id = Column(String(64), primary_key=True)
    user_token = Column(String(64), index=True, nullable=False)
    position = Column(Integer, nullable=False)
    original_message = Column(Text, nullable=False)
    raw_response_json = Column(Text, nullable=False)
    result_json = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class SectionStore:
    """Credit sections of every visitor, keyed by their session token.

    Sections keep the position they were created at; re-running a section
    replaces its contents in place. Each visitor keeps at most
    ``max_sections`` sections, the oldest positions being dropped first.
    """

    def __init__(self, url: str, *, max_sections: int = 10) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_sections = max_sections

    def list_sections(self, user_token: str) -> List[Dict[str, Any]]:
        if not user_token:
            return []
        with self._session_factory() as session:
            rows = session.execute(self._user_rows(user_token)).scalars()
            return [self._to_dict(row) for row in rows]

    def shared_records(self, user_token: str) -> List[Dict[str, Any]]:
        """The visitor's sections in the shape carried by share links."""
        return [
            {"originalMessage": s["original_message"], "rawApiResponse": s["raw_response"]}
            for s in self.list_sections(user_token)
        ]

    def save_section(
        self,
        user_token: str,
        section_id: str,
        original_message: str,
        raw_response: dict,
        result: Optional[dict] = None,
    ) -> bool:
        """Store a simulated section. Returns False if the id belongs to another visitor."""
        if not user_token:
            return False
        with self._session_factory() as session:
            row = session.get(CreditSectionModel, section_id)
            if row is None:
                last = session.execute(
                    select(func.max(CreditSectionModel.position)).where(
                        CreditSectionModel.user_token == user_token
                    )
                ).scalar()
                row = CreditSectionModel(
                    id=section_id,
                    user_token=user_token,
                    position=(last or 0) + 1,
                )
                session.add(row)
            elif row.user_token != user_token:
                return False
            row.original_message = original_message
            row.raw_response_json = json.dumps(raw_response)
            row.result_json = json.dumps(result) if result is not None else None
            session.commit()
        self._trim(user_token)
        return True

    def remove_section(self, user_token: str, section_id: str) -> bool:
        if not user_token:
            return False
        with self._session_factory() as session:
            row = session.get(CreditSectionModel, section_id)
            if row is None or row.user_token != user_token:
                return False
            session.delete(row)
            session.commit()
            return True

    def clear_sections(self, user_token: str) -> int:
        """Remove every section of the visitor and return how many there were."""
        if not user_token:
            return 0
        with self._session_factory() as session:
            deleted = session.execute(
                CreditSectionModel.__table__.delete().where(
                    CreditSectionModel.user_token == user_token
                )
            ).rowcount
            session.commit()
            return deleted

    def _trim(self, user_token: str) -> None:
        if not self._max_sections:
            return
        with self._session_factory() as session:
            rows = session.execute(self._user_rows(user_token)).scalars().all()
            for row in rows[: max(0, len(rows) - self._max_sections)]:
                session.delete(row)
            session.commit()

    @staticmethod
    def _user_rows(user_token: str):
        return (
            select(CreditSectionModel)
            .where(CreditSectionModel.user_token == user_token)
            .order_by(CreditSectionModel.position.asc())
        )

    @staticmethod
    def _to_dict(row: CreditSectionModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "position": row.position,
            "original_message": row.original_message,
            "raw_response": json.loads(row.raw_response_json),
            "result": json.loads(row.result_json) if row.result_json else None,
            "updated_at": row.updated_at.isoformat(),
        }


def create_store_from_env(url: str | None) -> SectionStore:
    return SectionStore(url or "sqlite:///qredi_sections.sqlite3")
