from shared.clients.convert.ConvertClientInterface import ConvertClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ConvertClientTika(ConvertClientInterface):
    """Apache Tika server text extraction."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="http://localhost:9998", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Tika"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="http://localhost:9998"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/version"

    def _get_endpoint_extract(self) -> str:
        return "/tika"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_extract_text(self, content: bytes, mime_type: str) -> str:
        response = await self.do_request(
            method="PUT",
            content=content,
            endpoint=self._get_endpoint_extract(),
            additional_headers={"Content-Type": mime_type, "Accept": "text/plain"},
            raise_on_error=True,
        )
        return response.text
