import json
from pathlib import Path

import pytest

from timeline import Timeline

SAMPLE_PATH = Path(__file__).resolve().parent.parent / 'data' / 'author_network.json'


@pytest.fixture
def small_doc():
    """Three authors, two links: A-B, B-C."""
    return {
        'nodes': [
            {'id': 'A', 'affiliation': 'X', 'country': 'US', 'publications': 4,
             'titles': ['First paper', 'Second <paper>']},
            {'id': 'B', 'affiliation': 'X', 'country': 'US', 'publications': 2},
            {'id': 'C', 'affiliation': 'Y', 'country': 'FR', 'publications': 1},
        ],
        'links': [
            {'source': 'A', 'target': 'B'},
            {'source': 'B', 'target': 'C'},
        ],
    }


@pytest.fixture
def sample_path():
    return SAMPLE_PATH


@pytest.fixture
def sample_doc():
    with open(SAMPLE_PATH, encoding='utf-8') as f:
        return json.load(f)


@pytest.fixture
def timeline():
    return Timeline()
