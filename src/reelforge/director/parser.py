"""
Project Parser
Valida y convierte un proyecto JSON (prompt o escenas explícitas) en objetos de dominio.
"""
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from ..domain.errors import UploadValidationError
from ..domain.models import Project, Scene, UploadBackground
from ..infrastructure.uploads import guess_mime, validate_image_upload
from .scene_builder import build_scenes

logger = logging.getLogger(__name__)


def slugify(text: str) -> str:
    """Identificador de proyecto a partir de un texto."""
    slug = re.sub(r'[^a-z0-9]+', '-', text.lower()).strip('-')
    return slug[:40] or "project"


class ProjectParser:
    """Validador y parseador de proyectos."""

    def __init__(self, base_dir: Optional[Path] = None):
        # Las rutas relativas de imágenes y narración se resuelven contra base_dir
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()

    def parse(self, raw_input: Union[str, Dict[str, Any]]) -> Project:
        """
        Convierte un JSON (string o dict) en un Project validado.

        Raises:
            ValueError: JSON inválido, sin escenas o con campos inválidos.
        """
        if isinstance(raw_input, str):
            # Limpiar bloques de código markdown si existen
            clean_input = raw_input.replace("```json", "").replace("```", "").strip()
            try:
                data = json.loads(clean_input)
            except json.JSONDecodeError as e:
                logger.error(f"Error decodificando JSON del proyecto: {e}")
                raise ValueError("El proyecto no es un JSON válido") from e
        else:
            data = dict(raw_input)

        try:
            scenes_data = data.get("scenes")
            if scenes_data:
                data["scenes"] = [self._load_scene(s) for s in scenes_data]
            else:
                data["scenes"] = build_scenes(data.pop("prompt", ""), polish=data.pop("polish", False))
            data.pop("prompt", None)

            if not data["scenes"]:
                raise ValueError("El proyecto no tiene escenas")

            audio = dict(data.get("audio") or {})
            if audio.get("narration_path"):
                audio["narration_path"] = self._resolve(audio["narration_path"])
            data["audio"] = audio

            data.setdefault("project_id", slugify(data["scenes"][0].text))
            project = Project(**data)
        except ValidationError as e:
            logger.error(f"Error parseando proyecto: {e}")
            raise ValueError(f"Proyecto inválido: {e}") from e

        self._validate_logic(project)
        return project

    def _resolve(self, path: str) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self.base_dir / p

    def _load_scene(self, raw: Dict[str, Any]) -> Scene:
        raw = dict(raw)
        background = raw.get("background")
        if isinstance(background, dict) and background.get("mode") == "upload":
            raw["background"] = self._load_upload(background)
        return Scene(**raw)

    def _load_upload(self, background: Dict[str, Any]) -> UploadBackground:
        """Lee la imagen subida; si no es válida la escena cae a degradado al renderizar."""
        image_path = background.get("image_path")
        if not image_path:
            return UploadBackground()
        path = self._resolve(image_path)
        try:
            data = validate_image_upload(path.read_bytes(), guess_mime(path.name) or "")
        except (OSError, UploadValidationError) as e:
            logger.warning(f"Imagen subida descartada ({path.name}): {e}")
            return UploadBackground()
        return UploadBackground(image=data)

    def _validate_logic(self, project: Project):
        """Reglas de negocio extra."""
        kinds = [s.kind.value for s in project.scenes]
        if len(kinds) > 1 and (kinds[0] != "hook" or kinds[-1] != "cta"):
            logger.warning(f"Orden de escenas inusual: {kinds}")
        if project.audio.narration_path and not project.audio.narration_path.exists():
            logger.warning(f"Narración no encontrada: {project.audio.narration_path}")
