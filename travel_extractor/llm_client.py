"""LLM client acting as the extraction backend"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from openai import AsyncOpenAI

from .config import LLM_MODEL, MAX_DOCUMENT_CHARS, OPENAI_API_KEY
from .lifecycle import Document
from .preprocessor import Preprocessor
from .text_extractor import TextExtractor

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a Senior Data Analyst. Convert the travel pricing documents below into a single, structured JSON database.

EXTRACTION RULES:
1. Location: Identify the country/location for each document.
2. Resorts: Group all data by Resort Name.
3. Bundle Rule: When one inclusive rate covers the stay and a set of amenities, extract that bundle price as the 'price' in the rooms array. List the included amenities as activities with a price of 0 and isIncluded=true.
4. Component Rule: When the stay and the services (transfers, excursions, supplements) are priced independently, extract the room prices and list every service as an activity with its own price. isIncluded=false unless the document explicitly states it is part of the room rate.
5. Currency: Identify the currency for each resort (e.g., USD, EUR, AUD). Never convert amounts between currencies.
6. Stay Logic: Ensure 'Stay' costs (rooms) are clearly identified, as these are the only items subject to discounts. Never list a service as a room.
7. Output: Strict JSON format matching the schema provided.

The locationType must be "Bundle" if the Bundle Rule is applied, and "Component" if the Component Rule is applied."""


class LLMClient:
    """Client for OpenAI API implementing the extraction backend"""

    def __init__(self,
                 api_key: Optional[str] = None,
                 model: Optional[str] = None,
                 client: Optional[AsyncOpenAI] = None,
                 max_document_chars: int = MAX_DOCUMENT_CHARS):
        if client is None:
            api_key = api_key or OPENAI_API_KEY
            if not api_key:
                raise ValueError("OPENAI_API_KEY not set in environment variables")
            client = AsyncOpenAI(api_key=api_key)
        self.client = client
        self.model = model or LLM_MODEL
        self.max_document_chars = max_document_chars
        self.text_extractor = TextExtractor()
        self.preprocessor = Preprocessor()

    async def extract(self, documents: Sequence[Document], schema: Dict[str, Any]) -> str:
        """
        Extract candidate travel pricing JSON for all documents in one call

        Args:
            documents: Documents of the batch (PDF or text)
            schema: JSON schema the response must follow

        Returns:
            Raw JSON text produced by the model (validated by the caller)
        """
        sections = []
        for index, document in enumerate(documents, start=1):
            text = await asyncio.to_thread(self.document_text, document)
            sections.append(f"=== Document {index}: {document.filename} ===\n{text}")

        messages = self.build_messages(sections)
        logger.info("Requesting extraction from %s for %d document(s)", self.model, len(documents))

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            response_format={
                "type": "json_schema",
                "json_schema": {"name": "travel_database", "schema": schema},
            },
        )
        return response.choices[0].message.content or "{}"

    def document_text(self, document: Document) -> str:
        """Plain text of one document, capped at ``max_document_chars``"""
        if TextExtractor.is_text(document.mime_type):
            text = self.preprocessor.normalize_text(document.content.decode("utf-8", errors="replace"))
            return text[:self.max_document_chars]

        blocks = self.text_extractor.extract(document.content)
        if not blocks:
            logger.warning("No text layer found in %s", document.filename)
        return self.preprocessor.to_text(blocks, max_chars=self.max_document_chars)

    @staticmethod
    def build_messages(sections: List[str]) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": "\n\n".join(sections)},
        ]
