from collections import Counter
from pathlib import Path
from uuid import UUID

from vocabcore.cli.practice_ui import enable_grind, start_practice_flow
from vocabcore.db.database import VocabularyDatabase
from vocabcore.session import PracticeSession


def practice_logic(
    deck_id: UUID,
    db_path: Path,
    user_id: str,
    grind: bool = False,
) -> Counter:
    """
    Set up and run a practice session for one deck.

    Opens the database, loads the deck with the user's progress, starts the
    tick timer and hands the session to the interactive loop. The exit
    transition is skipped in the terminal, so answers apply immediately.

    Parameters:
        deck_id (UUID): Deck to practise.
        db_path (Path): Path to the vocabulary database file.
        user_id (str): Whose progress is read and written.
        grind (bool): Start with grind mode on.
    """
    with VocabularyDatabase(db_path=db_path) as db_manager:
        db_manager.initialize_schema()
        deck = db_manager.require_deck(deck_id)

        with PracticeSession(
            store=db_manager,
            deck_id=deck_id,
            user_id=user_id,
            transition_seconds=0,
        ) as session:
            if grind:
                enable_grind(session)
            return start_practice_flow(session, deck_title=deck.title)
