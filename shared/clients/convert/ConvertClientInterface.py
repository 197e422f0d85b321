from abc import abstractmethod

from pydantic import BaseModel

from shared.clients.HttpClientInterface import HttpClientInterface
from shared.errors import ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperText import detect_file_kind, normalize_extracted_text

_KIND_MIME_TYPES = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


class ConversionResult(BaseModel):
    text: str
    byte_count: int
    kind: str


class ConvertClientInterface(HttpClientInterface):
    """Turns uploaded documents (.txt, .pdf, .docx) into normalized plain text.

    Plain text is decoded locally; binary formats are sent to the extraction backend.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "convert"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_extract_text(self, content: bytes, mime_type: str) -> str:
        """Send a binary document to the backend and return the raw extracted text.

        Args:
            content (bytes): The document bytes.
            mime_type (str): The canonical mime type of the document.

        Returns:
            str: The extracted text, not yet normalized.
        """
        pass

    async def convert_to_text(self, content: bytes, file_name: str, mime_type: str | None = None) -> ConversionResult:
        """
        Convert a document to normalized plain text.

        Raises:
            ValidationError: If the type is unsupported or no text could be extracted.
            httpx.HTTPError: If the extraction backend fails.
        """
        kind = detect_file_kind(file_name, mime_type)
        if kind is None:
            raise ValidationError("Only .txt, .pdf, or .docx uploads are supported.")

        if kind == "txt":
            raw = content.decode("utf-8", errors="replace")
        else:
            raw = await self.do_extract_text(content, _KIND_MIME_TYPES[kind])

        text = normalize_extracted_text(raw)
        if not text:
            raise ValidationError("The uploaded file did not contain extractable text.")
        self.logging.debug("Converted %s (%s) to %d characters of text", file_name, kind, len(text))
        return ConversionResult(text=text, byte_count=len(text.encode("utf-8")), kind=kind)
