from pydantic import BaseModel, Field


class ImageUrlOut(BaseModel):
    """GET /image/{id} body; keys are camelCase for the web client."""

    url: str
    expires_in: int = Field(..., serialization_alias="expiresIn")
    filename: str
    tier: str
    tracking_id: str = Field(..., serialization_alias="trackingId")


class DeliveryErrorOut(BaseModel):
    error: str
    reason: str | None = None
    message: str
