from typing import Literal

from pydantic import BaseModel


class EnvConfig(BaseModel):
    """A setting a client needs, checked when the client is constructed.

    The full variable name is <TYPE>_<ENGINE>_<env_key>, e.g. RAG_QDRANT_COLLECTION.
    A default of None marks the setting as mandatory.
    """

    env_key: str
    val_type: Literal["string", "number", "bool"] = "string"
    default: str | int | float | bool | None = None
