from abc import ABC, abstractmethod
from typing import Any

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ClientInterface(ABC):
    """Base of every backend client: store, storage, conversion, LLM and vector index.

    A client belongs to a *type* ("vector") and an *engine* ("Qdrant"). Its
    settings are read from ``{TYPE}_{ENGINE}_{KEY}`` variables, and the keys an
    engine declares in :meth:`_get_required_config` are checked once at
    construction so a misconfigured engine fails at startup, not mid-request.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)
        self.validate_full_configuration()

    ##########################################
    ################ IDENTITY ################
    ##########################################

    def get_client_type(self) -> str:
        return self._get_client_type().lower()

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    def get_client_label(self) -> str:
        """Human readable ``type/engine`` pair for log lines."""
        return f"{self.get_client_type()}/{self.get_engine_name()}"

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ##########################################
    ################# CONFIG #################
    ##########################################

    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """Settings the engine reads, by raw key. Entries without a default are mandatory."""
        pass

    def validate_full_configuration(self) -> None:
        """Read every declared setting once.

        Raises:
            ValueError: If a mandatory setting is missing or a value cannot be parsed.
        """
        for config in self._get_required_config():
            self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    def _get_config_key_name(self, raw_key: str) -> str:
        return f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """Read ``raw_key`` under this client's prefix, parsed as ``val_type``
        ("string", "number", "bool" or "list")."""
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        reader = readers.get(val_type)
        if reader is None:
            raise ValueError(f"Unsupported config value type '{val_type}' for '{raw_key}' of client {self.get_client_label()}.")
        return reader(self._get_config_key_name(raw_key), default=default)

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    @abstractmethod
    async def boot(self) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    @abstractmethod
    async def is_healthy(self) -> bool:
        """True when the backend answers and can serve requests."""
        pass
