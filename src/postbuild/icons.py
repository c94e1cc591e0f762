# icons.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class PluginInfo:
    """Where the plugin that ships the badge icons lives."""
    short_name: str
    base_resource_dir: Path


@dataclass(frozen=True)
class IconResolver:
    """
    Turns an icon file name into a path the host view layer can serve.

    Resolution is two-step and never fails:
      1. "/..."                        -> returned unchanged
      2. <plugin>/images/<icon> exists -> /plugin/<short_name>/images/<icon>
      3. otherwise                     -> <resource_path>/images/16x16/<icon>

    A missing icon simply renders broken.
    """
    plugin: Optional[PluginInfo] = None
    resource_path: str = "/static"

    def resolve(self, icon: str | None) -> str | None:
        if icon is None:
            return None
        if icon.startswith("/"):
            return icon
        if self._plugin_ships(icon):
            return f"/plugin/{self.plugin.short_name}/images/{icon}"
        return f"{self.resource_path}/images/16x16/{icon}"

    def _plugin_ships(self, icon: str) -> bool:
        if self.plugin is None:
            return False
        return (Path(self.plugin.base_resource_dir) / "images" / icon).exists()
