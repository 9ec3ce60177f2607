"""
Reads vocabulary decks from YAML files.

A deck file looks like::

    title: Everyday verbs
    description: Verbs for daily routines
    cards:
      - word: commute
        definition: to travel regularly between home and work
        example: I commute by train.
        transcription: /kəˈmjuːt/
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import UUID

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import DeckImportError
from .models import Deck, VocabularyCard

logger = logging.getLogger(__name__)


class _RawYAMLCard(BaseModel):
    model_config = ConfigDict(extra="forbid")

    word: str = Field(..., min_length=1)
    definition: str = Field(..., min_length=1)
    example: Optional[str] = None
    transcription: Optional[str] = None


class _RawYAMLDeckFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    cards: List[Dict[str, Any]] = Field(..., min_length=1)


@dataclass
class ImportResult:
    deck: Deck
    cards: List[VocabularyCard] = field(default_factory=list)
    errors: List[DeckImportError] = field(default_factory=list)


def _first_error(e: ValidationError) -> str:
    details = e.errors()[0]
    location = ".".join(map(str, details["loc"]))
    return f"'{location}': {details['msg']}" if location else details["msg"]


def load_deck_file(
    file_path: Path, deck_id: Optional[UUID] = None
) -> ImportResult:
    """
    Parse and validate a YAML deck file.

    Cards that fail validation are reported in ``ImportResult.errors`` and
    skipped; the rest are returned ready to insert. Words repeated within the
    file (case-insensitive) are kept once.

    Parameters:
        file_path: The YAML file to read.
        deck_id: Import into this existing deck instead of a new one.

    Raises:
        DeckImportError: If the file is unreadable, is not valid YAML, or the
            deck-level fields fail validation.
    """
    try:
        content = file_path.read_text(encoding="utf-8")
        raw = yaml.safe_load(content)
    except FileNotFoundError:
        raise DeckImportError(file_path, "File not found.") from None
    except OSError as e:
        raise DeckImportError(file_path, f"Could not read file: {e}") from e
    except yaml.YAMLError as e:
        raise DeckImportError(file_path, f"Invalid YAML syntax: {e}") from e

    if not isinstance(raw, dict):
        raise DeckImportError(
            file_path, "Top level of YAML must be a mapping (deck object)."
        )

    try:
        deck_file = _RawYAMLDeckFile.model_validate(raw)
        deck_kwargs: Dict[str, Any] = {
            "title": deck_file.title,
            "description": deck_file.description,
        }
        if deck_id is not None:
            deck_kwargs["id"] = deck_id
        deck = Deck(**deck_kwargs)
    except ValidationError as e:
        raise DeckImportError(
            file_path, f"Validation error in field {_first_error(e)}"
        ) from e

    result = ImportResult(deck=deck)
    seen_words = set()
    for index, raw_card in enumerate(deck_file.cards):
        try:
            parsed = _RawYAMLCard.model_validate(raw_card)
            card = VocabularyCard(
                deck_id=deck.id,
                front=parsed.word,
                back=parsed.definition,
                example_sentence=parsed.example,
                transcription=parsed.transcription,
            )
        except ValidationError as e:
            result.errors.append(
                DeckImportError(
                    file_path, f"card #{index + 1}: {_first_error(e)}"
                )
            )
            continue

        key = card.front.lower()
        if key in seen_words:
            logger.warning(
                f"Skipping duplicate word '{card.front}' in {file_path.name}."
            )
            continue
        seen_words.add(key)
        result.cards.append(card)

    logger.info(
        f"Read {len(result.cards)} cards from {file_path.name} "
        f"({len(result.errors)} errors)."
    )
    return result
