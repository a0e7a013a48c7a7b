from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions import ClientRequestError, ExtractionFailed
from shared.helper.HelperConfig import HelperConfig
from shared.models.ingestion import ExtractedDocument


class ExtractClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # default mime type of the documents handed to the parser
        self.mime_type = helper_config.get_string_val(
            f"{self.get_client_type().upper()}_MIME_TYPE", default="application/pdf"
        )

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "extract"

    def _get_default_timeout(self) -> float:
        # OCR of multi-page documents regularly takes longer than plain API calls
        return 120.0

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_process(self) -> str:
        """
        Returns the endpoint path for document processing requests.

        Returns:
            str: The endpoint path (e.g. "/v1/projects/p/locations/eu/processors/abc:process")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_process_payload(self, content: bytes, mime_type: str) -> dict:
        """Build the backend-specific request body for a processing request.

        Args:
            content (bytes): The raw document content.
            mime_type (str): The MIME type of the document.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_text_from_response(self, response_data: dict) -> str:
        """Extract the full plain text from a processing response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            str: The extracted text, empty if the document contained none.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_extract(self, content: bytes, mime_type: str | None = None) -> ExtractedDocument:
        """Send a document to the parsing service and return its text.

        Args:
            content (bytes): The raw document content.
            mime_type (str | None): The MIME type, defaults to the configured one.

        Returns:
            ExtractedDocument: The extracted text (possibly empty).

        Raises:
            ExtractionFailed: On any transport error, error status or unparsable response.
        """
        mime_type = mime_type or self.mime_type
        try:
            response = await self.do_request(
                method="POST",
                json=self.get_process_payload(content, mime_type),
                endpoint=self._get_endpoint_process(),
                raise_on_error=True,
            )
            text = self.extract_text_from_response(response.json())
        except ClientRequestError as exc:
            raise ExtractionFailed(
                f"Document processing failed with status {exc.status_code}", exc.details
            ) from exc
        except httpx.HTTPError as exc:
            raise ExtractionFailed(f"Document processing service unreachable: {exc}") from exc
        except (ValueError, AttributeError, TypeError) as exc:
            raise ExtractionFailed(f"Document processing returned an invalid response: {exc}") from exc

        self.logging.debug("Extracted %d characters (%s, %d bytes)", len(text), mime_type, len(content))
        return ExtractedDocument(text=text)
