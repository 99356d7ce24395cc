"""
Modelos de Dominio (Clean Architecture)
Definen la estructura de datos central del pipeline escena → video.
"""
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SceneKind(str, Enum):
    """Rol narrativo de una escena dentro del video."""
    HOOK = "hook"
    BEAT = "beat"
    CTA = "cta"

    @property
    def default_duration(self) -> float:
        return 5.0 if self is SceneKind.BEAT else 4.0


class BackgroundMode(str, Enum):
    UPLOAD = "upload"
    AI = "ai"
    GRADIENT = "gradient"


class UploadBackground(BaseModel):
    """Imagen subida por el usuario. Solo se consulta en modo upload."""
    mode: Literal["upload"] = "upload"
    image: Optional[bytes] = Field(None, repr=False)


class AiBackground(BaseModel):
    mode: Literal["ai"] = "ai"


class GradientBackground(BaseModel):
    mode: Literal["gradient"] = "gradient"


BackgroundSpec = Annotated[
    Union[UploadBackground, AiBackground, GradientBackground],
    Field(discriminator="mode"),
]


class Scene(BaseModel):
    """
    Una unidad atómica de narrativa audiovisual.
    Inmutable: las ediciones de fondo se hacen con `with_background`.
    """
    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Texto que se muestra (y narra) en la escena")
    keywords: List[str] = Field(default_factory=list)
    duration_sec: float = Field(..., gt=0)
    kind: SceneKind = SceneKind.BEAT
    # None = usar el modo por defecto del proyecto
    background: Optional[BackgroundSpec] = None

    @property
    def render_duration(self) -> float:
        """Duración efectiva: nunca menor que la duración base de su tipo."""
        return max(self.duration_sec, self.kind.default_duration)

    def with_background(self, background: BackgroundSpec) -> "Scene":
        return self.model_copy(update={"background": background})


class GradientSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    color1: str
    color2: str
    angle_degrees: int


class ResolvedBackground(BaseModel):
    """Resultado de la jerarquía de fallback. Se consume una vez por escena."""
    image_bytes: bytes = Field(..., repr=False)
    actual_mode: BackgroundMode
    requested_mode: BackgroundMode
    source_metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def reasons(self) -> List[str]:
        return self.source_metadata.get("reasons", [])

    @property
    def source_aspect(self) -> Optional[float]:
        return self.source_metadata.get("source_aspect")


class CaptionLayout(BaseModel):
    lines: List[str]
    font_size_px: int
    line_height_px: float
    safe_width_px: int
    canvas_width: int
    canvas_height: int
    warnings: List[str] = Field(default_factory=list)


class ZoomDirection(str, Enum):
    IN = "in"
    OUT = "out"


class PanDirection(str, Enum):
    LEFT_RIGHT = "left_right"
    RIGHT_LEFT = "right_left"
    TOP_BOTTOM = "top_bottom"
    BOTTOM_TOP = "bottom_top"

    @property
    def is_horizontal(self) -> bool:
        return self in (PanDirection.LEFT_RIGHT, PanDirection.RIGHT_LEFT)


class MotionParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    zoom_direction: ZoomDirection
    pan_direction: PanDirection
    duration_sec: float
    pan_fraction: float = 0.08
    zoom_start: float = 1.0
    zoom_end: float = 1.12


class TintConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    theme: str
    color: str  # hex #rrggbb
    opacity: float = Field(..., ge=0.0, le=1.0)


class SceneSegment(BaseModel):
    """Clip codificado de una escena, listo para concatenar."""
    scene_index: int
    path: Path
    size_bytes: int
    duration_sec: float


class SceneMetric(BaseModel):
    """Registro de diagnóstico por escena. Nunca afecta el flujo de control."""
    scene_index: int
    background_source: str = ""
    search_queries: List[str] = Field(default_factory=list)
    timings_ms: Dict[str, float] = Field(default_factory=dict)
    caption_font_size: Optional[int] = None
    warnings: List[str] = Field(default_factory=list)


class AudioTrack(BaseModel):
    id: str
    name: str
    filename: str
    description: str
    mood: Literal["lofi", "cinematic", "tension", "uplift"]


class AudioConfig(BaseModel):
    """Configuración de audio del usuario."""
    background_track: str = "lofi-1"
    music_volume: float = Field(65, ge=0, le=100)
    narration_path: Optional[Path] = None
    narration_tts: bool = False
    voice: Optional[str] = None
    voice_rate: float = Field(1.0, ge=0.5, le=2.0)


class AudioPlan(BaseModel):
    music_track: Optional[Path] = None
    narration_track: Optional[Path] = None
    music_gain_linear: float = 1.0
    fade_in_sec: float = 0.3
    fade_out_sec: float = 0.6
    fade_out_start_sec: float = 0.0
    total_duration_sec: float = 0.0
    warnings: List[str] = Field(default_factory=list)

    @property
    def has_audio(self) -> bool:
        return self.music_track is not None or self.narration_track is not None


class Project(BaseModel):
    """Un proyecto listo para renderizar."""
    project_id: str
    scenes: List[Scene]
    ai_enabled: bool = False
    ai_default: bool = False
    audio: AudioConfig = Field(default_factory=AudioConfig)

    @property
    def total_duration(self) -> float:
        return sum(s.render_duration for s in self.scenes)


class RunStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PipelineFailure(BaseModel):
    """Error estructurado que se entrega al llamador: escena, etapa y causa."""
    stage: str
    cause: str
    scene_index: Optional[int] = None


class RunResult(BaseModel):
    status: RunStatus
    output_path: Optional[Path] = None
    duration_sec: float = 0.0
    warnings: List[str] = Field(default_factory=list)
    metrics: List[SceneMetric] = Field(default_factory=list)
    error: Optional[PipelineFailure] = None
    truncated: bool = False

    @property
    def ok(self) -> bool:
        return self.status is RunStatus.SUCCEEDED

    def read_bytes(self) -> bytes:
        """Bytes del video final; vacío si la corrida no terminó con éxito."""
        if not self.ok or self.output_path is None:
            return b""
        return Path(self.output_path).read_bytes()
