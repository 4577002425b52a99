from typing import Literal

from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter a client engine requires.

    Attributes:
        env_key (str): The raw key of the environment variable. The client prefixes it with
            "<TYPE>_<ENGINE>_", e.g. "BASE_URL" becomes "RAG_QDRANT_BASE_URL".
        val_type (str): The expected type of the value: "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Default if the variable is not set.
            None marks the variable as required.
    """

    env_key: str
    val_type: Literal["string", "number", "bool", "list"] = "string"
    default: str | int | float | bool | list | None = None
