from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TokenRequest(BaseModel):
    api_key: str = Field(..., alias="apiKey", min_length=1)
    store_id: Optional[str] = Field(default=None, alias="storeId")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {"apiKey": "super-secret-key", "storeId": "001"}
        },
    }


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class RefreshRequest(BaseModel):
    refresh_token: str
