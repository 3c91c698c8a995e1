from __future__ import annotations

import pytest

from dueltcg.engine.match import PlayerSetup
from dueltcg.engine.types import CardDatabase
from dueltcg.paths import get_paths
from dueltcg.services.content import ContentService


@pytest.fixture
def content() -> ContentService:
    paths = get_paths()
    return ContentService(paths.data_dir, paths.schema_dir)


@pytest.fixture
def cards_db(content: ContentService) -> CardDatabase:
    return content.load_cards_db()


@pytest.fixture
def starter_setups(content: ContentService, cards_db: CardDatabase) -> list[PlayerSetup]:
    return [
        content.build_player_setup("starter_blue", "Blue", cards_db),
        content.build_player_setup("starter_red", "Red", cards_db),
    ]
