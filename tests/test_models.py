import pytest

from grounded_essay.errors import NotFoundError
from grounded_essay.models import (
	Citation,
	ExpansionState,
	Outline,
	Paragraph,
	ParagraphExpansion,
	ReferenceSelection,
	UnsupportedFlag,
	UsedChunk,
)


def _expansion(text='Plants store energy.'):
	return ParagraphExpansion(
		text=text,
		citations=[Citation(span_text='Plants store energy', source_label='R1:p1')],
		used_chunks=[UsedChunk(label='R1:p1', page=1)],
		unsupported_flags=[],
	)


def test_paragraph_starts_planned():
	paragraph = Paragraph(title='Intro', intended_chunks=[], suggested_word_count=100)

	assert paragraph.expansion_state == ExpansionState.PLANNED
	assert paragraph.expanded_text is None
	assert not paragraph.is_expanded


def test_paragraph_expansion_lifecycle():
	paragraph = Paragraph(title='Intro', intended_chunks=[], suggested_word_count=100)

	previous = paragraph.begin_expansion()
	assert previous == ExpansionState.PLANNED
	assert paragraph.is_expanding

	paragraph.complete_expansion(_expansion())

	assert paragraph.is_expanded
	assert paragraph.expanded_text == 'Plants store energy.'
	assert paragraph.citations[0].source_label == 'R1:p1'
	assert paragraph.used_chunks == [UsedChunk(label='R1:p1', page=1)]
	assert paragraph.last_error is None


def test_failed_retry_keeps_previous_output():
	paragraph = Paragraph(title='Intro', intended_chunks=[], suggested_word_count=100)
	paragraph.begin_expansion()
	paragraph.complete_expansion(_expansion())

	paragraph.begin_expansion()
	paragraph.fail_expansion('[503] upstream unavailable')

	assert paragraph.expansion_state == ExpansionState.FAILED
	assert paragraph.last_error == '[503] upstream unavailable'
	assert paragraph.expanded_text == 'Plants store energy.'
	assert len(paragraph.citations) == 1


def test_complete_expansion_rejects_empty_text():
	paragraph = Paragraph(title='Intro', intended_chunks=[], suggested_word_count=100)
	paragraph.begin_expansion()

	with pytest.raises(ValueError):
		paragraph.complete_expansion(_expansion(text='   '))

	assert paragraph.expansion_state == ExpansionState.EXPANDING
	assert paragraph.expanded_text is None


def test_successful_expansion_clears_last_error():
	paragraph = Paragraph(title='Intro', intended_chunks=[], suggested_word_count=100)
	paragraph.begin_expansion()
	paragraph.fail_expansion('timeout')

	paragraph.begin_expansion()
	paragraph.complete_expansion(
		ParagraphExpansion(
			text='A new claim.',
			citations=[],
			used_chunks=[],
			unsupported_flags=[UnsupportedFlag(sentence_text='A new claim.', reason='not supported by provided materials')],
		)
	)

	assert paragraph.is_expanded
	assert paragraph.last_error is None
	assert paragraph.unsupported_flags[0].sentence_text == 'A new claim.'


def test_outline_get_paragraph_out_of_range():
	outline = Outline(
		outline_id='outline_1',
		thesis='Thesis.',
		paragraphs=[Paragraph(title='Only', intended_chunks=[], suggested_word_count=10)],
		retrieved_chunk_count=0,
	)

	assert outline.get_paragraph(0).title == 'Only'
	with pytest.raises(NotFoundError):
		outline.get_paragraph(1)
	with pytest.raises(NotFoundError):
		outline.get_paragraph(-1)


def test_reference_selection_total():
	selection = ReferenceSelection(selected_ids=['a', 'b'], excluded_ids=['c'], reasoning='test')

	assert selection.total_references == 3
	assert selection.scores == {}
