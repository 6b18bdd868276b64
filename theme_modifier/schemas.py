from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class ThemeActionRequest(BaseModel):
    actionType: str = Field(min_length=1)
    themeId: str | None = None
    filename: str | None = None
    content: str | None = None

    @model_validator(mode="after")
    def strip_identifiers(self) -> "ThemeActionRequest":
        if self.themeId is not None:
            self.themeId = self.themeId.strip() or None
        if self.filename is not None:
            self.filename = self.filename.strip() or None
        return self


class ThemeSummary(BaseModel):
    id: str
    name: str
    role: str
    processing: bool | None = None


class AppOverviewResponse(BaseModel):
    shop: str
    themes: list[ThemeSummary]
    liveTheme: ThemeSummary | None = None


class InstallCallbackResponse(BaseModel):
    ok: bool = True
    shopDomain: str
    scopes: list[str]
    registeredWithApiTester: bool
