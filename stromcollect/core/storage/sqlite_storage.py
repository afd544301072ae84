"""
SQLite storage backend.

Persists collections through the SQLAlchemy ORM:
- collections: one row per field session
- specimens: ordered rows owned by a collection
- media: photographs and field book pages owned by a specimen

Deleting a collection row cascades to its specimens and their media.
Classification columns hold raw strings; unknown values are mapped to the
fallback enum variant by the model accessors, never rejected on load.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Float,
    ForeignKey,
    Integer,
    LargeBinary,
    String,
    Text,
    create_engine,
    func,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
    selectinload,
    sessionmaker,
)

from stromcollect.core.models import Collection, SpecimenRecord
from stromcollect.errors import StorageError

logger = logging.getLogger(__name__)

MEDIA_SPECIMEN = "specimen"
MEDIA_FIELD_BOOK = "fieldbook"


class Base(DeclarativeBase):
    pass


class CollectionRow(Base):
    """A stored field session."""

    __tablename__ = "collections"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    sequence: Mapped[int] = mapped_column(Integer, default=0)  # insertion order
    locality: Mapped[str] = mapped_column(String, default="")
    collector_name: Mapped[str] = mapped_column(String, default="")
    collection_date: Mapped[str] = mapped_column(String)  # ISO 8601, UTC
    drawer_overview_image: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)
    is_complete: Mapped[bool] = mapped_column(Boolean, default=False)

    specimens: Mapped[List["SpecimenRow"]] = relationship(
        back_populates="collection",
        cascade="all, delete-orphan",
        order_by="SpecimenRow.position",
    )


class SpecimenRow(Base):
    """A stored specimen record."""

    __tablename__ = "specimens"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    collection_id: Mapped[str] = mapped_column(
        ForeignKey("collections.id", ondelete="CASCADE"), index=True
    )
    position: Mapped[int] = mapped_column(Integer)
    specimen_id: Mapped[str] = mapped_column(String, default="")
    structure_type: Mapped[str] = mapped_column(String, default="Unknown")
    mineralogy: Mapped[str] = mapped_column(String, default="Unknown")
    stromatolite_age: Mapped[str] = mapped_column(String, default="")
    locality_country: Mapped[str] = mapped_column(String, default="")
    locality_state_province: Mapped[str] = mapped_column(String, default="")
    locality_nearest_city: Mapped[str] = mapped_column(String, default="")
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    notes: Mapped[str] = mapped_column(Text, default="")
    specimen_image_data: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)
    field_book_image_data: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)
    voice_note_data: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)
    voice_note_transcription: Mapped[str] = mapped_column(Text, default="")
    ocr_text: Mapped[str] = mapped_column(Text, default="")
    ocr_confidence: Mapped[float] = mapped_column(Float, default=0.0)
    quality_score: Mapped[float] = mapped_column(Float, default=0.0)
    is_complete: Mapped[bool] = mapped_column(Boolean, default=False)

    collection: Mapped[CollectionRow] = relationship(back_populates="specimens")
    media: Mapped[List["MediaRow"]] = relationship(
        back_populates="specimen",
        cascade="all, delete-orphan",
        order_by="MediaRow.position",
    )


class MediaRow(Base):
    """One photograph or field book page."""

    __tablename__ = "media"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    specimen_id: Mapped[str] = mapped_column(
        ForeignKey("specimens.id", ondelete="CASCADE"), index=True
    )
    kind: Mapped[str] = mapped_column(String)  # "specimen" or "fieldbook"
    position: Mapped[int] = mapped_column(Integer)
    data: Mapped[bytes] = mapped_column(LargeBinary)

    specimen: Mapped[SpecimenRow] = relationship(back_populates="media")


def _format_date(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _parse_date(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SQLiteStorage:
    """SQLite database storage for collections.

    Implements the CollectionStorage protocol. ``save`` replaces the stored
    collection wholesale, so specimen and media order always matches the
    in-memory lists.
    """

    def __init__(self, db_path: Path):
        """Initialize SQLite storage.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._engine = create_engine(f"sqlite:///{self.db_path}")
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as e:
            raise StorageError("db_init", f"Cannot open database {self.db_path}: {e}") from e

        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        logger.info(f"SQLite storage ready at {self.db_path}")

    def load_all(self) -> List[Collection]:
        """Load every collection in insertion order."""
        stmt = (
            select(CollectionRow)
            .options(selectinload(CollectionRow.specimens).selectinload(SpecimenRow.media))
            .order_by(CollectionRow.sequence)
        )
        try:
            with self._session_factory() as session:
                rows = session.scalars(stmt).all()
                return [self._row_to_collection(row) for row in rows]
        except SQLAlchemyError as e:
            raise StorageError("db_read", f"Failed to load collections: {e}") from e

    def save(self, collection: Collection) -> None:
        """Insert or replace a collection with all specimens and media."""
        try:
            with self._session_factory() as session, session.begin():
                existing = session.get(CollectionRow, collection.id)
                if existing is not None:
                    sequence = existing.sequence
                    session.delete(existing)
                    session.flush()
                else:
                    current_max = session.scalar(select(func.max(CollectionRow.sequence)))
                    sequence = (current_max or 0) + 1

                session.add(self._collection_to_row(collection, sequence))
        except SQLAlchemyError as e:
            raise StorageError("db_write", f"Failed to save collection {collection.id}: {e}") from e

        logger.debug(f"Saved collection {collection.id} ({len(collection.specimens)} specimens)")

    def delete(self, collection_id: str) -> bool:
        """Delete a collection; specimens and media go with it."""
        try:
            with self._session_factory() as session, session.begin():
                row = session.get(CollectionRow, collection_id)
                if row is None:
                    return False
                session.delete(row)
        except SQLAlchemyError as e:
            raise StorageError("db_write", f"Failed to delete collection {collection_id}: {e}") from e
        return True

    def close(self) -> None:
        self._engine.dispose()

    # -- row mapping ----------------------------------------------------

    def _collection_to_row(self, collection: Collection, sequence: int) -> CollectionRow:
        return CollectionRow(
            id=collection.id,
            sequence=sequence,
            locality=collection.locality,
            collector_name=collection.collector_name,
            collection_date=_format_date(collection.collection_date),
            drawer_overview_image=collection.drawer_overview_image,
            is_complete=collection.is_complete,
            specimens=[
                self._specimen_to_row(specimen, position)
                for position, specimen in enumerate(collection.specimens)
            ],
        )

    def _specimen_to_row(self, specimen: SpecimenRecord, position: int) -> SpecimenRow:
        media = [
            MediaRow(kind=MEDIA_SPECIMEN, position=i, data=data)
            for i, data in enumerate(specimen.specimen_images)
        ]
        media += [
            MediaRow(kind=MEDIA_FIELD_BOOK, position=i, data=data)
            for i, data in enumerate(specimen.field_book_images)
        ]
        return SpecimenRow(
            id=specimen.id,
            position=position,
            specimen_id=specimen.specimen_id,
            structure_type=specimen.structure_type,
            mineralogy=specimen.mineralogy,
            stromatolite_age=specimen.stromatolite_age,
            locality_country=specimen.locality_country,
            locality_state_province=specimen.locality_state_province,
            locality_nearest_city=specimen.locality_nearest_city,
            latitude=specimen.latitude,
            longitude=specimen.longitude,
            notes=specimen.notes,
            specimen_image_data=specimen.specimen_image_data,
            field_book_image_data=specimen.field_book_image_data,
            voice_note_data=specimen.voice_note_data,
            voice_note_transcription=specimen.voice_note_transcription,
            ocr_text=specimen.ocr_text,
            ocr_confidence=specimen.ocr_confidence,
            quality_score=specimen.quality_score,
            is_complete=specimen.is_complete,
            media=media,
        )

    def _row_to_collection(self, row: CollectionRow) -> Collection:
        return Collection(
            id=row.id,
            locality=row.locality,
            collector_name=row.collector_name,
            collection_date=_parse_date(row.collection_date),
            drawer_overview_image=row.drawer_overview_image,
            is_complete=row.is_complete,
            specimens=[self._row_to_specimen(s) for s in row.specimens],
        )

    def _row_to_specimen(self, row: SpecimenRow) -> SpecimenRecord:
        return SpecimenRecord(
            id=row.id,
            specimen_id=row.specimen_id,
            structure_type=row.structure_type,
            mineralogy=row.mineralogy,
            stromatolite_age=row.stromatolite_age,
            locality_country=row.locality_country,
            locality_state_province=row.locality_state_province,
            locality_nearest_city=row.locality_nearest_city,
            latitude=row.latitude,
            longitude=row.longitude,
            notes=row.notes,
            specimen_images=[m.data for m in row.media if m.kind == MEDIA_SPECIMEN],
            specimen_image_data=row.specimen_image_data,
            field_book_images=[m.data for m in row.media if m.kind == MEDIA_FIELD_BOOK],
            field_book_image_data=row.field_book_image_data,
            voice_note_data=row.voice_note_data,
            voice_note_transcription=row.voice_note_transcription,
            ocr_text=row.ocr_text,
            ocr_confidence=row.ocr_confidence,
            quality_score=row.quality_score,
            is_complete=row.is_complete,
        )
