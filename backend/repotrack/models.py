"""SQLAlchemy models for repositions and their ledgers."""
from sqlalchemy import (
    Boolean, Column, String, Integer, Float, DateTime, Text,
    ForeignKey, CheckConstraint, Index, UniqueConstraint, text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base


AREAS = (
    'patronaje', 'corte', 'bordado', 'ensamble', 'plancha', 'calidad',
    'operaciones', 'admin', 'almacen', 'diseño', 'envios',
)
REPOSITION_TYPES = ('repocision', 'reproceso')
URGENCY_LEVELS = ('urgente', 'intermedio', 'poco_urgente')
REPOSITION_STATUSES = ('pendiente', 'aprobado', 'rechazado', 'completado', 'eliminado', 'cancelado')
TRANSFER_STATUSES = ('pending', 'accepted', 'rejected')
MATERIAL_STATUSES = ('disponible', 'falta_parcial', 'no_disponible')
NOTIFICATION_TYPES = (
    'new_reposition', 'reposition_transfer', 'reposition_approved', 'reposition_rejected',
    'reposition_completed', 'reposition_deleted', 'reposition_canceled', 'reposition_paused',
    'reposition_resumed', 'reposition_received', 'transfer_processed',
    'completion_approval_needed',
)


class User(Base):
    """Platform user; belongs to exactly one area."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    area = Column(String(20), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(area.in_(AREAS), name='chk_user_area'),
    )


class Reposition(Base):
    """Rework / replacement request moving between areas."""
    __tablename__ = "repositions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    folio = Column(String(32), unique=True, nullable=False, index=True)
    type = Column(String(20), nullable=False)

    solicitante_nombre = Column(String(255), nullable=True)
    solicitante_area = Column(String(20), nullable=False)
    fecha_solicitud = Column(DateTime(timezone=True), nullable=True)

    no_solicitud = Column(String(100), nullable=True)
    no_hoja = Column(String(100), nullable=True)
    fecha_corte = Column(String(20), nullable=True)

    causante_dano = Column(String(255), nullable=True)
    area_causante_dano = Column(String(20), nullable=True)
    tipo_accidente = Column(String(255), nullable=True)
    otro_accidente = Column(Text, nullable=True)
    descripcion_suceso = Column(Text, nullable=True)

    modelo_prenda = Column(String(255), nullable=True)
    tela = Column(String(255), nullable=True)
    color = Column(String(100), nullable=True)
    tipo_pieza = Column(String(255), nullable=True)
    consumo_tela = Column(Float, nullable=True)

    urgencia = Column(String(20), nullable=False)
    observaciones = Column(Text, nullable=True)
    volver_hacer = Column(Text, nullable=True)
    materiales_implicados = Column(Text, nullable=True)

    current_area = Column(String(20), nullable=False, index=True)
    # When the reposition last arrived in current_area (creation or accepted transfer).
    area_entered_at = Column(DateTime(timezone=True), nullable=True)
    # Accepted transfers whose destination was solicitante_area.
    returns_to_creator = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default='pendiente', index=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(type.in_(REPOSITION_TYPES), name='chk_reposition_type'),
        CheckConstraint(urgencia.in_(URGENCY_LEVELS), name='chk_reposition_urgencia'),
        CheckConstraint(status.in_(REPOSITION_STATUSES), name='chk_reposition_status'),
        CheckConstraint(solicitante_area.in_(AREAS), name='chk_reposition_solicitante_area'),
        CheckConstraint(current_area.in_(AREAS), name='chk_reposition_current_area'),
        CheckConstraint(returns_to_creator >= 0, name='chk_reposition_returns_non_negative'),
    )

    # Relationships
    creator = relationship("User", foreign_keys=[created_by])
    approver = relationship("User", foreign_keys=[approved_by])
    pieces = relationship(
        "RepositionPiece", back_populates="reposition",
        cascade="all, delete-orphan", order_by="RepositionPiece.id",
    )
    products = relationship(
        "RepositionProduct", back_populates="reposition",
        cascade="all, delete-orphan", order_by="RepositionProduct.id",
    )
    contrast_fabrics = relationship(
        "RepositionContrastFabric", back_populates="reposition",
        cascade="all, delete-orphan", order_by="RepositionContrastFabric.id",
    )


class RepositionPiece(Base):
    """Requested piece (size + quantity)."""
    __tablename__ = "reposition_pieces"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reposition_id = Column(Integer, ForeignKey("repositions.id", ondelete="CASCADE"), nullable=False, index=True)
    talla = Column(String(20), nullable=False)
    cantidad = Column(Integer, nullable=False)
    folio_original = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(cantidad >= 1, name='chk_piece_cantidad_positive'),
    )

    reposition = relationship("Reposition", back_populates="pieces")


class RepositionProduct(Base):
    """One garment in a multi-garment reposition."""
    __tablename__ = "reposition_products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reposition_id = Column(Integer, ForeignKey("repositions.id", ondelete="CASCADE"), nullable=False, index=True)
    modelo_prenda = Column(String(255), nullable=False)
    tela = Column(String(255), nullable=False)
    color = Column(String(100), nullable=False)
    tipo_pieza = Column(String(255), nullable=False)
    consumo_tela = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    reposition = relationship("Reposition", back_populates="products")


class RepositionContrastFabric(Base):
    __tablename__ = "reposition_contrast_fabrics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reposition_id = Column(Integer, ForeignKey("repositions.id", ondelete="CASCADE"), nullable=False, index=True)
    tela = Column(String(255), nullable=False)
    color = Column(String(100), nullable=False)
    consumo = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    reposition = relationship("Reposition", back_populates="contrast_fabrics")


class RepositionTransfer(Base):
    """Proposed handoff between areas; immutable once processed."""
    __tablename__ = "reposition_transfers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reposition_id = Column(Integer, ForeignKey("repositions.id"), nullable=False, index=True)
    from_area = Column(String(20), nullable=False)
    to_area = Column(String(20), nullable=False, index=True)
    notes = Column(Text, nullable=True)
    consumo_tela = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default='pending', index=True)
    rejection_reason = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    processed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(status.in_(TRANSFER_STATUSES), name='chk_transfer_status'),
        CheckConstraint(from_area.in_(AREAS), name='chk_transfer_from_area'),
        CheckConstraint(to_area.in_(AREAS), name='chk_transfer_to_area'),
        CheckConstraint(from_area != to_area, name='chk_transfer_distinct_areas'),
        # At most one pending transfer per (reposition, from_area).
        Index(
            'uq_transfer_pending_per_area', 'reposition_id', 'from_area',
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index('idx_transfer_reposition_from_created', 'reposition_id', 'from_area', 'created_at'),
    )

    creator = relationship("User", foreign_keys=[created_by])
    processor = relationship("User", foreign_keys=[processed_by])


class RepositionTimer(Base):
    """Working time of one area on one reposition (single row per pair)."""
    __tablename__ = "reposition_timers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reposition_id = Column(Integer, ForeignKey("repositions.id"), nullable=False, index=True)
    area = Column(String(20), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    elapsed_minutes = Column(Integer, nullable=True)
    is_running = Column(Boolean, nullable=False, default=False)
    manual_start_time = Column(String(5), nullable=True)  # HH:MM
    manual_end_time = Column(String(5), nullable=True)  # HH:MM
    manual_date = Column(String(10), nullable=True)  # YYYY-MM-DD
    manual_end_date = Column(String(10), nullable=True)  # YYYY-MM-DD
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint('reposition_id', 'area', name='uq_timer_reposition_area'),
        CheckConstraint(area.in_(AREAS), name='chk_timer_area'),
    )


class RepositionHistory(Base):
    """Append-only audit trail entry."""
    __tablename__ = "reposition_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reposition_id = Column(Integer, ForeignKey("repositions.id"), nullable=False, index=True)
    action = Column(String(50), nullable=False, index=True)
    description = Column(Text, nullable=False)
    from_area = Column(String(20), nullable=True)
    to_area = Column(String(20), nullable=True)
    pieces = Column(Integer, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user = relationship("User")


class Notification(Base):
    """In-app notification; read state is owned by the recipient."""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    reposition_id = Column(Integer, ForeignKey("repositions.id"), nullable=True, index=True)
    read = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint(type.in_(NOTIFICATION_TYPES), name='chk_notification_type'),
    )


class RepositionMaterial(Base):
    """Warehouse material availability and pause state for a reposition."""
    __tablename__ = "reposition_materials"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reposition_id = Column(Integer, ForeignKey("repositions.id"), nullable=False, unique=True)
    material_status = Column(String(20), nullable=False, default='disponible')
    missing_materials = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    is_paused = Column(Boolean, nullable=False, default=False)
    pause_reason = Column(Text, nullable=True)
    paused_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    paused_at = Column(DateTime(timezone=True), nullable=True)
    resumed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    resumed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(material_status.in_(MATERIAL_STATUSES), name='chk_material_status'),
    )


class RepositionDocument(Base):
    """Metadata of a document stored in external blob storage."""
    __tablename__ = "reposition_documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reposition_id = Column(Integer, ForeignKey("repositions.id"), nullable=False, index=True)
    filename = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    size = Column(Integer, nullable=False)
    path = Column(Text, nullable=False)
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(size > 0, name='chk_document_size_positive'),
    )


class FolioCounter(Base):
    """Atomic per-month folio sequence."""
    __tablename__ = "folio_counters"

    year = Column(Integer, primary_key=True)
    month = Column(Integer, primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)
