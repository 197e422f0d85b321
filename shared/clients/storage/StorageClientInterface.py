from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperText import sanitize_file_name
from shared.models.access import Visibility
from shared.models.records import ORGANIZATION_ROOT_FOLDER_ID


class StorageClientInterface(ClientInterface):
    """Object storage holding the raw (and converted) bytes of every file."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "storage"

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def build_object_key(
        visibility: Visibility,
        organization_id: str,
        owner_id: str,
        folder_id: str,
        file_id: str,
        file_name: str,
        team_id: str | None = None,
    ) -> str:
        """
        Builds the storage key of a file from its visibility scope.

        Layout:
            public-root/<folder>/<file>-<name>             organization root folder
            organizations/<org>/<folder>/<file>-<name>     other organization folders
            teams/<team>/<folder>/<file>-<name>            team files ("shared-team" without a team id)
            users/<owner>/<folder>/<file>-<name>           personal files

        Returns:
            str: The object key.
        """
        if visibility == Visibility.ORGANIZATION:
            prefix = ORGANIZATION_ROOT_FOLDER_ID if folder_id == ORGANIZATION_ROOT_FOLDER_ID else f"organizations/{organization_id}"
        elif visibility == Visibility.TEAM:
            prefix = f"teams/{team_id or 'shared-team'}"
        else:
            prefix = f"users/{owner_id}"
        return f"{prefix}/{folder_id}/{file_id}-{sanitize_file_name(file_name)}"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the stored bytes, or None if the key does not exist."""
        pass

    @abstractmethod
    async def put(self, key: str, content: bytes, content_type: str | None = None) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete the object. Deleting a missing key is not an error."""
        pass
