"""Modelos y errores de dominio."""

from .models import (
    AiBackground,
    AudioConfig,
    AudioPlan,
    AudioTrack,
    BackgroundMode,
    BackgroundSpec,
    CaptionLayout,
    GradientBackground,
    GradientSpec,
    MotionParams,
    PanDirection,
    PipelineFailure,
    Project,
    ResolvedBackground,
    RunResult,
    RunStatus,
    Scene,
    SceneKind,
    SceneMetric,
    SceneSegment,
    TintConfig,
    UploadBackground,
    ZoomDirection,
)
