"""
Response wrapper envelope — ``{"type": "Text", "value": "<escaped payload>"}``.
"""

from pydantic import BaseModel


class TextEnvelope(BaseModel):
    type: str
    value: str

    model_config = {"extra": "forbid"}
