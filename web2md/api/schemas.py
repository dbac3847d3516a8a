"""Request bodies and response envelopes shared by the routers."""

from __future__ import annotations

from typing import Any, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, StrictBool

from web2md.models import AIProvider, ScrapeOptions


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class OptionsBody(BaseModel):
    """Per-request options, camelCase on the wire.

    Flags must be JSON booleans; ``"false"`` is rejected rather than read as
    truthy.  Omitted or ``null`` fields keep the ``ScrapeOptions`` default.
    """

    model_config = ConfigDict(populate_by_name=True)

    include_images: Optional[StrictBool] = Field(None, alias="includeImages")
    include_links: Optional[StrictBool] = Field(None, alias="includeLinks")
    use_browser: Optional[StrictBool] = Field(None, alias="useBrowser")
    ai_provider: Optional[AIProvider] = Field(None, alias="aiProvider")

    def to_options(self) -> ScrapeOptions:
        return ScrapeOptions.from_dict(self.model_dump(exclude_none=True))


def request_options(options: Optional[OptionsBody]) -> ScrapeOptions:
    return options.to_options() if options else ScrapeOptions()


class ScrapeRequest(BaseModel):
    url: Optional[str] = None
    options: Optional[OptionsBody] = None


class CleanRequest(BaseModel):
    html: Optional[str] = None
    url: Optional[str] = None
    options: Optional[OptionsBody] = None


class ConvertRequest(BaseModel):
    url: Optional[str] = None
    html: Optional[str] = None
    options: Optional[OptionsBody] = None


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------

def success(data: dict[str, Any]) -> dict[str, Any]:
    return {"success": True, "data": data}


def failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
    )
