import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from grounded_essay.config.settings import Settings
from grounded_essay.models import (
	ChunkRef,
	Outline,
	OutlineRecord,
	OutlineRequest,
	Paragraph,
	SourceGroup,
	OriginKind,
)
from grounded_essay.modules.evidence import index
from grounded_essay.modules.sources import SourceRegistry

R1_TEXT = 'Photosynthesis converts light to chemical energy.'
N1_TEXT = 'Ask about efficiency.'

OUTLINE_JSON = json.dumps(
	{
		'thesis': 'Photosynthesis turns sunlight into the chemical energy that sustains plant life.',
		'paragraphs': [
			{'title': 'How photosynthesis converts light', 'chunk_labels': ['R1:p1'], 'weight': 2},
			{'title': 'Questions about efficiency', 'chunk_labels': ['N1:p1'], 'weight': 1},
		],
	}
)

PARAGRAPH_0 = (
	'Photosynthesis converts light into chemical energy [R1:p1]. '
	'This process sustains most food chains on Earth.'
)
PARAGRAPH_1 = 'Researchers still ask how efficient this conversion really is [N1:p1].'


@pytest.fixture
def test_settings(tmp_path):
	return Settings(
		_env_file=None,
		GENERATION_TIMEOUT_SECONDS=1.0,
		STORAGE_PATH=tmp_path / 'storage',
		PERSIST_OUTLINES=False,
	)


@pytest.fixture
def make_generator():
	def _make(*responses):
		generator = MagicMock()
		generator.generate = AsyncMock(side_effect=list(responses))
		return generator

	return _make


class SlowGenerator:
	"""Never answers within a test's timeout."""

	def __init__(self, delay: float = 10.0):
		self.delay = delay
		self.calls = 0

	async def generate(self, system_prompt: str, user_prompt: str) -> str:
		self.calls += 1
		await asyncio.sleep(self.delay)
		return 'too late'


@pytest.fixture
def slow_generator():
	return SlowGenerator()


@pytest.fixture
def registry():
	registry = SourceRegistry()
	registry.add_source(
		SourceGroup.REFERENCES, R1_TEXT, OriginKind.FILE, display_name='Plant Biology', page_count=1, source_id='R1'
	)
	registry.add_source(SourceGroup.NOTES, N1_TEXT, OriginKind.PASTED_TEXT, source_id='N1')
	return registry


@pytest.fixture
def chunks(registry):
	return index(registry.list_items())


@pytest.fixture
def outline_record():
	paragraphs = [
		Paragraph(
			title='How photosynthesis converts light',
			intended_chunks=[ChunkRef(label='R1:p1', excerpt_text=R1_TEXT)],
			suggested_word_count=200,
		),
		Paragraph(
			title='Questions about efficiency',
			intended_chunks=[ChunkRef(label='N1:p1', excerpt_text=N1_TEXT)],
			suggested_word_count=100,
		),
		Paragraph(title='Conclusion', intended_chunks=[], suggested_word_count=50),
	]
	outline = Outline(
		outline_id='outline_test',
		thesis='Photosynthesis turns sunlight into chemical energy.',
		paragraphs=paragraphs,
		retrieved_chunk_count=2,
	)
	request = OutlineRequest(prompt='Explain how photosynthesis works', target_word_count=350)
	return OutlineRecord(outline=outline, request=request)
