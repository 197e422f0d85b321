import asyncio
from pathlib import Path

from shared.clients.storage.StorageClientInterface import StorageClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class StorageClientLocal(StorageClientInterface):
    """Stores objects as files below STORAGE_LOCAL_ROOT_DIR, one file per key."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._root_dir = Path(self.get_config_val("ROOT_DIR", default="./data/objects", val_type="string")).resolve()

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Local"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="ROOT_DIR", val_type="string", default="./data/objects"),
        ]

    def _get_path(self, key: str) -> Path:
        path = (self._root_dir / key.lstrip("/")).resolve()
        if not path.is_relative_to(self._root_dir):
            raise ValueError(f"Object key '{key}' escapes the storage root.")
        return path

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        await asyncio.to_thread(self._root_dir.mkdir, parents=True, exist_ok=True)
        self.logging.info("Local object storage at %s", self._root_dir)

    async def close(self) -> None:
        pass

    async def is_healthy(self) -> bool:
        return self._root_dir.is_dir()

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def get(self, key: str) -> bytes | None:
        path = self._get_path(key)
        if not path.is_file():
            return None
        return await asyncio.to_thread(path.read_bytes)

    async def put(self, key: str, content: bytes, content_type: str | None = None) -> None:
        path = self._get_path(key)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)

        await asyncio.to_thread(_write)
        self.logging.debug("Stored %d bytes at %s (%s)", len(content), key, content_type or "application/octet-stream")

    async def delete(self, key: str) -> None:
        path = self._get_path(key)
        await asyncio.to_thread(path.unlink, missing_ok=True)
