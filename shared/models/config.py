from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Describes a single environment setting a client needs.

    Attributes:
        env_key (str): The raw key; the client prefixes it with "{CLIENT_TYPE}_{ENGINE}_".
        val_type (str): "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Fallback value. None marks the setting as required.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None
