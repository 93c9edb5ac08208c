from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

ThemeName = Literal["light", "dark", "system"]

DEFAULT_THEME: ThemeName = "system"


class ThemePreferenceUpdate(BaseModel):
    theme: ThemeName


class ThemePreferenceOut(BaseModel):
    theme: ThemeName


class ThemeUpdateResult(BaseModel):
    message: str
    theme: ThemeName
    warning: str | None = None
