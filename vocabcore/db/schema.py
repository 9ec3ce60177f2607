"""DDL for the vocabcore DuckDB database."""

DB_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS decks (
    id UUID PRIMARY KEY,
    title VARCHAR NOT NULL,
    description VARCHAR,
    is_public BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL
);

CREATE TABLE IF NOT EXISTS cards (
    id UUID PRIMARY KEY,
    deck_id UUID NOT NULL,
    front VARCHAR NOT NULL,
    back VARCHAR NOT NULL,
    example_sentence VARCHAR,
    transcription VARCHAR,
    added_at TIMESTAMPTZ NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_cards_deck_id ON cards (deck_id);

CREATE TABLE IF NOT EXISTS card_progress (
    user_id VARCHAR NOT NULL,
    card_id UUID NOT NULL,
    deck_id UUID NOT NULL,
    health INTEGER NOT NULL CHECK (health >= 0 AND health <= 4),
    last_reviewed_at TIMESTAMPTZ,
    PRIMARY KEY (user_id, card_id)
);
"""
