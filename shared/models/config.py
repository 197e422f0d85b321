from typing import Literal

from pydantic import BaseModel


class EnvConfig(BaseModel):
    """One setting an engine reads. ``env_key`` is given without the
    ``{TYPE}_{ENGINE}_`` prefix; ``default=None`` marks it mandatory."""

    env_key: str
    val_type: Literal["string", "number", "bool", "list"] = "string"
    default: str | int | float | bool | list | None = None
