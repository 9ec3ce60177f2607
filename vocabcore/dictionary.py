"""Dictionary lookups against the free dictionaryapi.dev service."""

import logging
from typing import Any, List, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from .constants import DICTIONARY_API_URL
from .exceptions import DictionaryLookupError, WordNotFoundError

logger = logging.getLogger(__name__)


class Definition(BaseModel):
    definition: str
    example: Optional[str] = None


class Meaning(BaseModel):
    part_of_speech: str = Field(..., alias="partOfSpeech")
    definitions: List[Definition] = Field(default_factory=list)

    @field_validator("definitions", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class DictionaryEntry(BaseModel):
    """The useful part of the first entry the service returns for a word."""

    word: str
    phonetic: Optional[str] = None
    meanings: List[Meaning] = Field(default_factory=list)

    @field_validator("meanings", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def first_definition(self) -> Optional[Definition]:
        for meaning in self.meanings:
            if meaning.definitions:
                return meaning.definitions[0]
        return None


class DictionaryClient:
    """
    Looks up English words.

    The client owns an ``httpx.Client`` unless one is passed in; use it as a
    context manager or call ``close()``.
    """

    def __init__(
        self,
        base_url: str = DICTIONARY_API_URL,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def __enter__(self) -> "DictionaryClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def lookup(self, word: str) -> DictionaryEntry:
        """
        Fetch definitions for ``word``.

        Raises:
            ValueError: If ``word`` is blank.
            WordNotFoundError: If the service has no entry for the word.
            DictionaryLookupError: On transport errors or unexpected payloads.
        """
        word = word.strip()
        if not word:
            raise ValueError("Missing word to look up.")

        url = f"{self.base_url}/{quote(word, safe='')}"
        logger.debug(f"Looking up '{word}' at {url}")
        try:
            response = self._client.get(url)
        except httpx.HTTPError as e:
            logger.error(f"Dictionary API error for '{word}': {e}")
            raise DictionaryLookupError(word, str(e)) from e

        if response.status_code == 404:
            raise WordNotFoundError(word)
        if not response.is_success:
            raise DictionaryLookupError(
                word, f"service answered HTTP {response.status_code}"
            )

        return self._parse(word, response)

    def _parse(self, word: str, response: httpx.Response) -> DictionaryEntry:
        try:
            payload: Any = response.json()
        except ValueError as e:
            raise DictionaryLookupError(word, "response is not JSON") from e

        if not isinstance(payload, list) or not payload:
            raise WordNotFoundError(word)

        try:
            return DictionaryEntry.model_validate(payload[0])
        except ValidationError as e:
            raise DictionaryLookupError(
                word, f"unexpected response shape: {e.errors()[0]['msg']}"
            ) from e
