from pathlib import Path
from typing import Any, Dict, List

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..area.models import AreaStatistics
from ..economy.models import EconomyStatistics, LedgerEntry
from .models import CropInfo


class FarmRenderer:
    def __init__(self, template_dir: Path = None):
        # __file__ is .../tilefarm/farm/render.py -> parents[1] is the package root
        self.template_dir = template_dir or Path(__file__).resolve().parents[1] / "resources" / "farm"
        self._env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html"]),
        )

    def render_template(self, template_name: str, **context) -> str:
        tpl = self._env.get_template(template_name)
        return tpl.render(**context)

    def list_templates(self) -> List[str]:
        return self._env.list_templates()

    def render_status(self, summary: Dict[str, Any], crops: List[CropInfo], economy: EconomyStatistics,
                      areas: AreaStatistics, recent: List[LedgerEntry]) -> str:
        return self.render_template(
            "farm_status.html",
            summary=summary,
            crops=sorted(crops, key=lambda c: (not c.is_mature, c.crop_type)),
            economy=economy,
            areas=areas,
            recent=recent,
        )
