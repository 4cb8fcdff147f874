"""Pydantic schemas for API."""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


# Users
class UserBrief(BaseModel):
    """Brief user info for nested responses."""
    id: int
    name: str
    area: str
    model_config = ConfigDict(from_attributes=True)


# Reposition children
class PieceIn(BaseModel):
    # Left optional so the workflow reports missing size/quantity as a domain validation error.
    talla: Optional[str] = None
    cantidad: Optional[int] = None
    folio_original: Optional[str] = None


class PieceOut(BaseModel):
    id: int
    talla: str
    cantidad: int
    folio_original: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class ProductIn(BaseModel):
    modelo_prenda: Optional[str] = None
    tela: Optional[str] = None
    color: Optional[str] = None
    tipo_pieza: Optional[str] = None
    consumo_tela: Optional[float] = None
    pieces: list[PieceIn] = Field(default_factory=list)


class ProductOut(BaseModel):
    id: int
    modelo_prenda: str
    tela: str
    color: str
    tipo_pieza: str
    consumo_tela: Optional[float] = None
    model_config = ConfigDict(from_attributes=True)


class ContrastFabricIn(BaseModel):
    tela: str = Field(min_length=1)
    color: str = Field(min_length=1)
    consumo: float = Field(gt=0)


class ContrastFabricOut(BaseModel):
    id: int
    tela: str
    color: str
    consumo: float
    model_config = ConfigDict(from_attributes=True)


# Repositions
class RepositionBase(BaseModel):
    type: str
    urgencia: str
    solicitante_nombre: Optional[str] = None
    no_solicitud: Optional[str] = None
    no_hoja: Optional[str] = None
    fecha_corte: Optional[str] = None
    causante_dano: Optional[str] = None
    area_causante_dano: Optional[str] = None
    tipo_accidente: Optional[str] = None
    otro_accidente: Optional[str] = None
    descripcion_suceso: Optional[str] = None
    modelo_prenda: Optional[str] = None
    tela: Optional[str] = None
    color: Optional[str] = None
    tipo_pieza: Optional[str] = None
    consumo_tela: Optional[float] = None
    observaciones: Optional[str] = None
    volver_hacer: Optional[str] = None
    materiales_implicados: Optional[str] = None


class RepositionCreate(RepositionBase):
    pieces: list[PieceIn] = Field(default_factory=list)
    products: list[ProductIn] = Field(default_factory=list)
    contrast_fabrics: list[ContrastFabricIn] = Field(default_factory=list)


class RepositionUpdate(RepositionCreate):
    """Full replacement payload used when a rejected reposition is resubmitted."""


class RepositionResponse(RepositionBase):
    id: int
    folio: str
    solicitante_area: str
    fecha_solicitud: Optional[datetime] = None
    current_area: str
    area_entered_at: Optional[datetime] = None
    returns_to_creator: int = 0
    status: str
    created_by: int
    approved_by: Optional[int] = None
    created_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    pieces: list[PieceOut] = Field(default_factory=list)
    products: list[ProductOut] = Field(default_factory=list)
    contrast_fabrics: list[ContrastFabricOut] = Field(default_factory=list)
    model_config = ConfigDict(from_attributes=True)


class ApprovalRequest(BaseModel):
    action: str
    notes: Optional[str] = None


class CompletionRequest(BaseModel):
    notes: Optional[str] = None


class CompletionResponse(BaseModel):
    completed: bool
    message: str
    reposition: RepositionResponse


class ReasonRequest(BaseModel):
    reason: Optional[str] = None


class PendingCountResponse(BaseModel):
    count: int


# Transfers
class TransferCreate(BaseModel):
    to_area: str
    notes: Optional[str] = None
    consumo_tela: Optional[float] = Field(default=None, ge=0)


class TransferProcess(BaseModel):
    action: str
    reason: Optional[str] = None


class TransferResponse(BaseModel):
    id: int
    reposition_id: int
    from_area: str
    to_area: str
    notes: Optional[str] = None
    consumo_tela: Optional[float] = None
    status: str
    rejection_reason: Optional[str] = None
    created_by: int
    processed_by: Optional[int] = None
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Timers
class TimerAreaRequest(BaseModel):
    area: Optional[str] = None


class ManualTimerRequest(BaseModel):
    area: Optional[str] = None
    start_time: str
    end_time: str
    start_date: str
    end_date: Optional[str] = None


class TimerResponse(BaseModel):
    id: int
    reposition_id: int
    area: str
    user_id: int
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    elapsed_minutes: Optional[int] = None
    is_running: bool
    manual_start_time: Optional[str] = None
    manual_end_time: Optional[str] = None
    manual_date: Optional[str] = None
    manual_end_date: Optional[str] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TimerStopResponse(BaseModel):
    elapsed_time: str
    elapsed_minutes: int


# History / tracking
class HistoryEntryResponse(BaseModel):
    id: int
    action: str
    description: str
    from_area: Optional[str] = None
    to_area: Optional[str] = None
    pieces: Optional[int] = None
    user_id: int
    user_name: str
    created_at: Optional[datetime] = None


class TrackingHeader(BaseModel):
    id: int
    folio: str
    status: str
    current_area: str
    progress: int
    is_paused: bool = False


class TrackingStep(BaseModel):
    id: int
    area: str
    status: str
    timestamp: Optional[datetime] = None
    user: Optional[str] = None
    time_spent: Optional[str] = None
    time_in_minutes: int = 0
    date: Optional[str] = None


class TrackingTransfer(BaseModel):
    id: int
    from_area: str
    to_area: str
    status: str
    notes: str = ""
    consumo_tela: Optional[float] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    transferred_by: str
    processed_by: Optional[str] = None


class TrackingTotalTime(BaseModel):
    formatted: str
    minutes: int


class TrackingResponse(BaseModel):
    reposition: TrackingHeader
    steps: list[TrackingStep]
    history: list[HistoryEntryResponse]
    transfers: list[TrackingTransfer]
    total_time: TrackingTotalTime
    area_times: dict[str, int]


# Warehouse materials
class MaterialStatusUpdate(BaseModel):
    material_status: str
    missing_materials: Optional[str] = None
    notes: Optional[str] = None


class PauseRequest(BaseModel):
    reason: str


class MaterialStatusResponse(BaseModel):
    reposition_id: int
    material_status: str
    missing_materials: Optional[str] = None
    notes: Optional[str] = None
    is_paused: bool
    pause_reason: Optional[str] = None
    paused_by: Optional[int] = None
    paused_at: Optional[datetime] = None
    resumed_by: Optional[int] = None
    resumed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Documents
class DocumentCreate(BaseModel):
    filename: str = Field(min_length=1)
    original_name: str = Field(min_length=1)
    size: int
    path: str = Field(min_length=1)


class DocumentResponse(BaseModel):
    id: int
    reposition_id: int
    filename: str
    original_name: str
    size: int
    path: str
    uploaded_by: int
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Notifications
class NotificationResponse(BaseModel):
    id: int
    user_id: int
    type: str
    title: str
    message: str
    reposition_id: Optional[int] = None
    read: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
